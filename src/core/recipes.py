#!/usr/bin/env python3
"""
Recipe lookup and recipe round-up generation.

Backs ``/api/findRecipes`` (keyword search over the Airtable recipe table)
and ``/api/generate-recipe`` (embedding-ranked round-up rendered as
WordPress block markup).
"""

import html
import logging
import math
from typing import Any, Dict, List, Optional, Sequence

from core.exceptions import ConfigurationError, InvalidRequestError, UpstreamError

logger = logging.getLogger(__name__)

DEFAULT_FILTER = "NOT({Title} = '')"
DEFAULT_MAX_RECORDS = 10
SEARCH_FIELDS = ('Category', 'Tag', 'Title', 'Description')
KEYWORD_MODEL = 'gpt-4o-mini'
RECIPE_COPY_MODEL = 'gpt-3.5-turbo'
DEFAULT_WORDS_PER_ITEM = 100
DEFAULT_NUMBERING = '1.'
CONTEXT_DESCRIPTION_LENGTH = 200

NAME_FIELDS = ('Name', 'Title', 'title', 'recipe')
URL_FIELDS = ('URL', 'Url', 'link', 'Link')
CATEGORY_FIELDS = ('Categories', 'Category', 'categories', 'category', 'Tags')

BLOG_WRITER_PROMPT = 'You are an expert blog writer.'
CULINARY_PROMPT = 'You are a helpful culinary assistant.'


def airtable_not_configured() -> ConfigurationError:
    return ConfigurationError('Airtable environment variables', 'not configured')


def build_keyword_prompt(headline: str) -> str:
    return (
        f"Extract 3-5 key categories, tags, flavors, or dish types from this recipe roundup title: "
        f"'{headline}'. Focus on the main theme, such as flavors (e.g., chocolate, vanilla) and types "
        "(e.g., desserts, cakes). Output as a comma-separated list."
    )


def parse_keyword_list(text: Optional[str]) -> List[str]:
    keywords = []
    for part in (text or '').split(','):
        keyword = part.strip().lower()
        if keyword and keyword not in keywords:
            keywords.append(keyword)
    return keywords


def build_recipe_filter(keywords: Sequence[str]) -> str:
    """
    Airtable formula matching any keyword in the category, tag, title or
    description of a recipe. Without keywords every titled recipe matches.
    """
    parts = []
    for keyword in keywords:
        escaped = keyword.replace('\\', '\\\\').replace("'", "\\'")
        for name in SEARCH_FIELDS:
            parts.append(f"FIND('{escaped}', LOWER({{{name}}})) > 0")
    if not parts:
        return DEFAULT_FILTER
    return f"OR({','.join(parts)})"


def _first_field(fields: Dict[str, Any], names: Sequence[str]) -> Any:
    for name in names:
        value = fields.get(name)
        if value:
            return value
    return None


def record_name(fields: Dict[str, Any], fallback: str = '') -> str:
    value = _first_field(fields, NAME_FIELDS)
    return str(value) if value else fallback


def record_url(fields: Dict[str, Any]) -> str:
    value = _first_field(fields, URL_FIELDS)
    return str(value) if value else ''


def record_image(fields: Dict[str, Any]) -> str:
    if fields.get('Image Link'):
        return str(fields['Image Link'])
    attachments = fields.get('Image')
    if isinstance(attachments, list) and attachments and isinstance(attachments[0], dict):
        if attachments[0].get('url'):
            return str(attachments[0]['url'])
    return str(fields.get('image') or '')


def record_source(fields: Dict[str, Any]) -> str:
    return str(fields.get('Source') or fields.get('Blog Source') or '')


def record_embedding_text(fields: Dict[str, Any]) -> str:
    categories = _first_field(fields, CATEGORY_FIELDS) or ''
    if isinstance(categories, list):
        categories = ' '.join(str(c) for c in categories)
    return f"{record_name(fields)} {categories}".strip()


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    dot = sum(x * y for x, y in zip(a, b))
    norm_a = math.sqrt(sum(x * x for x in a))
    norm_b = math.sqrt(sum(y * y for y in b))
    if not norm_a or not norm_b:
        return 0.0
    return dot / (norm_a * norm_b)


def format_numbering_prefix(index: int, numbering_format: Optional[str]) -> str:
    """
    Prefix for the ``index``-th heading (1-based).

    ``None`` disables numbering; otherwise the first of ``)`` or ``:`` found in
    the format decides the separator, defaulting to a period.
    """
    fmt = (numbering_format or DEFAULT_NUMBERING).strip()
    if fmt.lower() == 'none':
        return ''
    if ')' in fmt:
        return f"{index}) "
    if ':' in fmt:
        return f"{index}: "
    return f"{index}. "


def _attr(value: str) -> str:
    return html.escape(value, quote=True)


def render_paragraph(text: str) -> str:
    return f"<!-- wp:paragraph -->\n<p>{text}</p>\n<!-- /wp:paragraph -->\n\n"


def render_recipe_item(prefix: str, name: str, url: str, description: str,
                       image_url: str = '', source: str = '') -> str:
    """Gutenberg heading, optional image and description blocks for one recipe."""
    markup = f'<!-- wp:heading {{"level":2}} -->\n<h2>{prefix}{name}</h2>\n<!-- /wp:heading -->\n'
    if image_url:
        caption = f'<figcaption class="wp-element-caption">Image by {source}</figcaption>' if source else ''
        markup += (
            '<!-- wp:image {"sizeSlug":"large","linkDestination":"custom"} -->\n'
            f'<figure class="wp-block-image size-large"><a href="{_attr(url)}" target="_blank" '
            f'rel="noreferrer noopener"><img src="{_attr(image_url)}" alt="{_attr(name)}"/></a>{caption}</figure>\n'
            '<!-- /wp:image -->\n'
        )
    link = f' <a href="{_attr(url)}" target="_blank" rel="noreferrer noopener">{name}</a>' if url else ''
    markup += render_paragraph(f"{description}{link}")
    return markup


def parse_find_request(payload: Any):
    if not isinstance(payload, dict):
        raise InvalidRequestError("Invalid JSON payload")
    headline = payload.get('headline')
    if not headline or not isinstance(headline, str):
        raise InvalidRequestError("headline is required", 'headline')
    count = payload.get('count')
    if not isinstance(count, int) or isinstance(count, bool) or count <= 0:
        count = DEFAULT_MAX_RECORDS
    return headline, count


def _optional_int(value: Any) -> Optional[int]:
    try:
        number = int(value)
    except (TypeError, ValueError):
        return None
    return number if number > 0 else None


class RecipeService:
    """Recipe search and round-up writer."""

    def __init__(self, llm, airtable, copy_model: str = RECIPE_COPY_MODEL):
        """
        Args:
            llm: OpenAIClient
            airtable: AirtableClient, or None when Airtable is not configured
            copy_model: Model for intro, description and outro copy
        """
        self.llm = llm
        self.airtable = airtable
        self.copy_model = copy_model

    def _require_airtable(self):
        if self.airtable is None:
            raise airtable_not_configured()
        return self.airtable

    async def extract_keywords(self, headline: str) -> List[str]:
        if self.llm is None:
            return []
        try:
            result = await self.llm.chat(
                [{'role': 'user', 'content': build_keyword_prompt(headline)}],
                model=KEYWORD_MODEL,
                max_tokens=50,
                interaction_type="recipe_keywords",
            )
        except UpstreamError as e:
            logger.error(f"Keyword extraction failed: {e}")
            return []
        return parse_keyword_list(result.content)

    async def find_recipes(self, headline: str, count: int = DEFAULT_MAX_RECORDS) -> List[Dict[str, Any]]:
        """
        Search the recipe table for a round-up headline.

        Returns:
            ``[{id, title, url}]``
        """
        airtable = self._require_airtable()
        keywords = await self.extract_keywords(headline)
        formula = build_recipe_filter(keywords)
        logger.info(f"Searching recipes for '{headline}' with {len(keywords)} keywords")
        records = await airtable.list_records(filter_formula=formula, max_records=count, fields=['Title', 'URL'])
        return [
            {'id': record.id, 'title': record.fields.get('Title') or '', 'url': record.fields.get('URL')}
            for record in records
        ]

    async def rank_recipes_by_embedding(self, title: str, records: List[Any]) -> List[Any]:
        """Order records by cosine similarity to the title; unchanged on failure."""
        if not title or not records or self.llm is None:
            return records
        texts = [record_embedding_text(record.fields) for record in records]
        try:
            vectors = await self.llm.embed([title] + texts)
        except UpstreamError as e:
            logger.error(f"Embedding ranking failed: {e}")
            return records
        title_vector, recipe_vectors = vectors[0], vectors[1:]
        scored = [(cosine_similarity(title_vector, vector), position) for position, vector in enumerate(recipe_vectors)]
        scored.sort(key=lambda item: (-item[0], item[1]))
        return [records[position] for _, position in scored]

    async def _copy(self, system_prompt: str, prompt: str, max_tokens: Optional[int] = None,
                    interaction_type: str = "recipe_copy") -> str:
        result = await self.llm.chat(
            [{'role': 'system', 'content': system_prompt}, {'role': 'user', 'content': prompt}],
            model=self.copy_model,
            max_tokens=max_tokens,
            interaction_type=interaction_type,
        )
        return result.content.strip()

    async def generate_roundup(self, payload: Dict[str, Any]) -> Dict[str, str]:
        """
        Write a recipe round-up in WordPress block markup.

        Args:
            payload: ``{title, wordsPerItem, numberingFormat, itemCount}``

        Returns:
            ``{content}``
        """
        if not isinstance(payload, dict):
            raise InvalidRequestError("Invalid JSON payload")
        airtable = self._require_airtable()
        if self.llm is None:
            raise ConfigurationError('OPENAI_API_KEY')

        title = str(payload.get('title') or '').strip()
        words_per_item = _optional_int(payload.get('wordsPerItem')) or DEFAULT_WORDS_PER_ITEM
        numbering_format = str(payload.get('numberingFormat') or DEFAULT_NUMBERING)
        item_count = _optional_int(payload.get('itemCount'))

        records = await airtable.list_records()
        records = await self.rank_recipes_by_embedding(title, records)
        if item_count:
            records = records[:item_count]

        content = ''
        if title:
            intro = await self._copy(
                BLOG_WRITER_PROMPT,
                f'Write a short introductory paragraph for a blog post titled "{title}".',
                interaction_type="recipe_intro",
            )
            if intro:
                content += render_paragraph(intro)

        for position, record in enumerate(records):
            fields = record.fields
            name = record_name(fields, f"Recipe {position + 1}")
            prompt = f'Write a 3-4 sentence engaging description for the recipe "{name}".'
            context = fields.get('Description')
            if isinstance(context, str) and context:
                prompt += f" Use this context if helpful: {context[:CONTEXT_DESCRIPTION_LENGTH]}"
            if position + 1 < len(records):
                next_name = record_name(records[position + 1].fields)
                if next_name:
                    prompt += f' Conclude with a short transitional sentence introducing the next recipe, "{next_name}".'
            description = await self._copy(
                CULINARY_PROMPT, prompt, max_tokens=max(100, words_per_item), interaction_type="recipe_description"
            )
            content += render_recipe_item(
                format_numbering_prefix(position + 1, numbering_format),
                name,
                record_url(fields),
                description,
                record_image(fields),
                record_source(fields),
            )

        if records and title:
            names = ', '.join(filter(None, (record_name(r.fields) for r in records)))
            try:
                outro = await self._copy(
                    BLOG_WRITER_PROMPT,
                    f'Write a brief concluding paragraph for an article titled "{title}" that featured these '
                    f'recipes: {names}. Connect them smoothly and end on an inviting note.',
                    interaction_type="recipe_outro",
                )
            except UpstreamError as e:
                logger.error(f"Conclusion generation failed: {e}")
                outro = ''
            if outro:
                content += render_paragraph(outro).rstrip('\n') + '\n'

        logger.info(f"Generated recipe round-up '{title}' with {len(records)} recipes")
        return {'content': content}
