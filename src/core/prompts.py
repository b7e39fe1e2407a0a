#!/usr/bin/env python3
"""
Prompt templates for article generation.

This module centralizes the prompt text sent to the LLM by ``/api/generate``:
article-type templates, the option-driven instruction lines, the recent
reporting block, the corrective instructions used on retries and the
verification prompt.
"""

import math
import re
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

import pytz

from core.models import SourceArticle
from core.ranking import parse_published_at

# ---------- LENGTH TABLES ----------
SECTION_RANGES: Dict[str, Tuple[int, int]] = {
    'shorter': (2, 4),
    'short': (3, 5),
    'medium': (4, 6),
    'longForm': (5, 7),
    'longer': (6, 8),
}

WORD_RANGES: Dict[str, Tuple[int, int]] = {
    'shorter': (500, 700),
    'short': (700, 1000),
    'medium': (1000, 1300),
    'longForm': (1300, 1600),
    'longer': (1600, 1900),
}

DEFAULT_WORDS = 1900
WORDS_PER_SECTION = 220
DEFAULT_LENGTH_OPTION = 'medium'

# ---------- FIXED INSTRUCTION LINES ----------
DETAIL_INSTRUCTION = (
    '- Provide specific real-world examples (e.g., car model years or actual app names) '
    'instead of generic placeholders like "App 1".\n'
)

GROUNDING_INSTRUCTION = (
    '- Base every factual statement on the reporting summaries provided and cite the '
    'matching URL when referencing them.\n'
)

STYLE_RULES = (
    '  - Use standard HTML tags such as <h2>, <h3>, <p>, <a>, <ul>, and <li> as needed.\n'
    '  - Avoid cheesy or overly rigid language (e.g., "gem", "embodiment", "endeavor", '
    '"Vigilant", "Daunting", etc.).\n'
    '  - Avoid referring to the article itself (e.g., "This article explores..." or '
    '"In this article...") anywhere in the introduction.\n'
    '  - Do NOT wrap your output in markdown code fences or extra <p> tags.\n'
)

CLOSING_RULES = (
    '  - Do NOT label the intro under "Introduction" or with prefixes like "INTRO:", and do not '
    'end with a "Conclusion" heading or closing phrases like "In conclusion".\n'
    '  - Do NOT invent sources or links.\n'
)

OUTLINE_INTRO_RULES = (
    '  - Use the outline\'s introduction bullet to write a 2-3 sentence introduction (no <h2> tags) '
    'without including the words "INTRO:" or "Introduction".\n'
    '  - For each <h2> in the outline, write 2-3 paragraphs under it.\n'
)

# ---------- VERIFICATION LIMITS ----------
MAX_ARTICLE_HTML_LENGTH = 80_000
MAX_SOURCE_PROMPT_LENGTH = 60_000
ARTICLE_TRUNCATION_NOTICE = '[Article truncated for verification]'
SOURCE_TRUNCATION_NOTICE = '[Sources truncated for verification]'

# ---------- KEY DETAIL EXTRACTION ----------
MAX_DETAILS_PER_KIND = 5

_MONTHS = (
    'January|February|March|April|May|June|July|August|September|October|November|December|'
    'Jan|Feb|Mar|Apr|Jun|Jul|Aug|Sept|Sep|Oct|Nov|Dec'
)

METRIC_REGEX = re.compile(
    r'[$€£]\s?\d[\d,]*(?:\.\d+)?(?:\s?(?:million|billion|trillion))?'
    r'|\b\d[\d,]*(?:\.\d+)?(?:%|\s?percent\b|-[a-z]+\b|\s(?:million|billion|trillion)\b)',
    re.IGNORECASE,
)
TIMELINE_REGEX = re.compile(
    rf'\b(?:{_MONTHS})\.?\s+\d{{1,2}}(?:st|nd|rd|th)?(?:,\s*\d{{4}})?'
    rf'|\b(?:{_MONTHS})\s+\d{{4}}\b'
    r'|\bQ[1-4]\s+\d{4}\b',
)
METHOD_PHRASES = (
    'randomized controlled trial',
    'double-blind',
    'placebo-controlled',
    'clinical trial',
    'meta-analysis',
    'systematic review',
    'cohort study',
    'observational study',
    'longitudinal study',
    'peer-reviewed',
    'survey',
    'poll',
    'simulation',
    'field test',
)
METHOD_REGEX = re.compile(
    r'\b(?:' + '|'.join(re.escape(phrase) for phrase in METHOD_PHRASES) + r')\b',
    re.IGNORECASE,
)
ENTITY_REGEX = re.compile(r"\b[A-Z][A-Za-z0-9&'.-]*[A-Za-z0-9](?:\s+[A-Z][A-Za-z0-9&'.-]*[A-Za-z0-9])*")
ENTITY_STOPWORDS = {
    'a', 'an', 'the', 'in', 'on', 'at', 'for', 'but', 'and', 'or', 'this', 'that', 'these',
    'those', 'it', 'its', 'he', 'she', 'they', 'we', 'after', 'before', 'according', 'however',
    'meanwhile', 'while', 'when', 'officials', 'researchers', 'experts', 'first',
    'second', 'third', 'last', 'new', 'key', 'latest', 'more', 'most', 'some', 'many',
    'several', 'other', 'one', 'two', 'three',
}
_MONTH_WORDS = {month.lower() for month in _MONTHS.split('|')}


def _unique_matches(values: Sequence[str]) -> List[str]:
    seen = set()
    unique: List[str] = []
    for value in values:
        cleaned = value.strip().rstrip('.,')
        if cleaned and cleaned.lower() not in seen:
            seen.add(cleaned.lower())
            unique.append(cleaned)
        if len(unique) >= MAX_DETAILS_PER_KIND:
            break
    return unique


def extract_key_details(summary: str) -> Dict[str, List[str]]:
    """Pull metrics, timelines, research methods and named entities from a summary."""
    text = summary or ''
    entities = []
    for match in ENTITY_REGEX.finditer(text):
        words = match.group(0).split()
        while words and (words[0].lower() in ENTITY_STOPWORDS or words[0].lower() in _MONTH_WORDS):
            words = words[1:]
        if words and not all(w.lower() in _MONTH_WORDS for w in words):
            entities.append(' '.join(words))
    return {
        'metrics': _unique_matches([m.group(0) for m in METRIC_REGEX.finditer(text)]),
        'timelines': _unique_matches([m.group(0) for m in TIMELINE_REGEX.finditer(text)]),
        'methods': _unique_matches([m.group(0) for m in METHOD_REGEX.finditer(text)]),
        'entities': _unique_matches(entities),
    }


def format_key_details(summary: str) -> List[str]:
    """Instruction lines asking the writer to repeat the summary's hard facts exactly."""
    details = extract_key_details(summary)
    lines = []
    if details['metrics']:
        lines.append(f"Cite these metrics verbatim: {', '.join(details['metrics'])}")
    if details['timelines']:
        lines.append(f"State these reported timelines exactly: {', '.join(details['timelines'])}")
    if details['methods']:
        lines.append(f"Reference the research methods noted: {', '.join(details['methods'])}")
    if details['entities']:
        lines.append(f"Name these entities precisely: {', '.join(details['entities'])}")
    return lines


def format_published_timestamp(value: Optional[str]) -> str:
    published = parse_published_at(value)
    if published is None:
        return 'Unknown publication time'
    published = published.astimezone(pytz.UTC)
    return published.strftime('%Y-%m-%dT%H:%M:%S.') + f"{published.microsecond // 1000:03d}Z"


def build_recent_reporting_block(sources: Sequence[SourceArticle]) -> str:
    """
    Describe the recent reporting the article must draw on.

    Args:
        sources: Sources selected for the article

    Returns:
        Multi-line block, or an empty string when there are no sources
    """
    if not sources:
        return ''
    lines = ['Recent reporting to reference:']
    for position, source in enumerate(sources, start=1):
        title = source.title or 'Untitled'
        summary = ' '.join((source.summary or '').split())
        lines.append(f'{position}. "{title}" ({format_published_timestamp(source.published_at)})')
        lines.append(f"   Summary: {summary or 'No summary provided.'}")
        lines.append(f"   URL: {source.url}")
        details = format_key_details(summary)
        if details:
            lines.append('   Key details:')
            lines.extend(f"   - {detail}" for detail in details)
    return '\n'.join(lines)


# ---------- OPTION-DRIVEN INSTRUCTIONS ----------
def get_word_bounds(length_option: Optional[str], custom_sections: Optional[int]) -> Tuple[int, int]:
    if length_option == 'custom' and custom_sections:
        approx = custom_sections * WORDS_PER_SECTION
        return math.floor(approx * 0.8), math.ceil(approx * 1.2)
    if length_option in WORD_RANGES:
        return WORD_RANGES[length_option]
    return DEFAULT_WORDS - 150, DEFAULT_WORDS + 150


def desired_word_count(length_option: Optional[str], custom_sections: Optional[int]) -> float:
    if length_option == 'custom' and custom_sections:
        return custom_sections * WORDS_PER_SECTION
    if length_option in WORD_RANGES:
        low, high = WORD_RANGES[length_option]
        return (low + high) / 2
    return DEFAULT_WORDS


def tone_instruction(tone_of_voice: Optional[str], custom_tone: Optional[str] = None) -> str:
    tone = custom_tone if tone_of_voice == 'Custom' and custom_tone else tone_of_voice
    return f"- Write in a {tone} tone of voice.\n" if tone else ''


def point_of_view_instruction(point_of_view: Optional[str]) -> str:
    return f"- Use a {point_of_view} perspective.\n" if point_of_view else ''


def custom_instruction_block(custom_instructions: Optional[str]) -> str:
    text = (custom_instructions or '').strip()
    return f"- {text}\n" if text else ''


def length_instruction(length_option: Optional[str], custom_sections: Optional[int]) -> str:
    if length_option == 'default':
        return (f"- Aim for around 9 sections (~{DEFAULT_WORDS:,} words total, ~{WORDS_PER_SECTION} "
                "words per section), but feel free to adjust based on the topic.\n")
    if length_option == 'custom' and custom_sections:
        approx = custom_sections * WORDS_PER_SECTION
        return f"- Use exactly {custom_sections} sections (~{approx} words total).\n"
    option = length_option or DEFAULT_LENGTH_OPTION
    if option in WORD_RANGES:
        min_words, max_words = WORD_RANGES[option]
        min_sections, max_sections = SECTION_RANGES[option]
        return (f"- Include {min_sections}-{max_sections} sections and write between "
                f"{min_words} and {max_words} words.\n")
    return (f"- Aim for around 9 sections (~{DEFAULT_WORDS:,} words total, ~{WORDS_PER_SECTION} "
            "words per section), but feel free to adjust based on the topic.\n")


def section_instruction(length_option: Optional[str], custom_sections: Optional[int]) -> str:
    if length_option == 'default':
        return 'Include around 9 <h2> headings.'
    if length_option == 'custom' and custom_sections:
        return f"Use exactly {custom_sections} <h2> headings."
    option = length_option or DEFAULT_LENGTH_OPTION
    if option in SECTION_RANGES:
        low, high = SECTION_RANGES[option]
        return f"Include {low}-{high} <h2> headings."
    return 'Include at least three <h2> headings.'


def link_instruction(source_urls: Sequence[str], min_links: int) -> str:
    if not source_urls:
        return ''
    listed = '\n'.join(f"  - {url}" for url in source_urls)
    return (
        f"- Integrate at least {min_links} clickable HTML links into relevant keywords or phrases.\n"
        f"{listed}\n"
        '  - Embed each link as <a href="URL" target="_blank">text</a> exactly once and do not list '
        'them at the end. Spread the links naturally across the article.\n'
    )


@dataclass
class PromptParts:
    """Instruction fragments shared by every article template."""
    title: str
    tone: str = ''
    point_of_view: str = ''
    custom: str = ''
    links: str = ''
    reporting_block: str = ''
    grounding: str = ''

    @property
    def reporting(self) -> str:
        return f"{self.reporting_block}\n\n" if self.reporting_block else ''

    @property
    def requirements_tail(self) -> str:
        return f"{STYLE_RULES}  {DETAIL_INSTRUCTION}{self.grounding}{self.custom}{self.links}{CLOSING_RULES}"


# ---------- ARTICLE TEMPLATES ----------
def build_blog_outline_prompt(title: str, length_option: Optional[str], custom_sections: Optional[int],
                              source_urls: Sequence[str]) -> str:
    references = ''
    if source_urls:
        references = "• Use these references:\n" + '\n'.join(f"- {url}" for url in source_urls)
    return f"""
You are a professional writer.

Create a detailed outline for an article titled:
"{title}"

• Begin with a section labeled "INTRO:" and include a single bullet with a 2-3 sentence introduction (no <h2>).
• After the "INTRO:" section, {section_instruction(length_option, custom_sections)}
• Under each <h2>, list 2-3 bullet-point subtopics.
• Do NOT use "Introduction" or "Intro" as an <h2> heading.
• Do NOT use "Conclusion" or "Bottom line" as an <h2> heading.
{references}
""".strip()


def build_listicle_outline_prompt(title: str, count: int, numbering_format: Optional[str]) -> str:
    numbering = f"Number each heading formatted like {numbering_format}.\n" if numbering_format else ''
    return f"""
You are a professional writer.
Create an outline for a listicle titled "{title}".
Use exactly {count} items.
{numbering}List only the headings (no descriptions).
""".strip()


def build_blog_prompt(parts: PromptParts, outline: str, length_option: Optional[str],
                      custom_sections: Optional[int]) -> str:
    return f"""
You are a professional journalist writing a web article.

Title: "{parts.title}"
Do NOT include the title or any <h1> tag in the HTML output.

Outline:
{outline}

{parts.reporting}{parts.tone}{parts.point_of_view}Requirements:
  {length_instruction(length_option, custom_sections)}{OUTLINE_INTRO_RULES}{parts.requirements_tail}
Output raw HTML only:
""".strip()


def build_listicle_prompt(parts: PromptParts, outline: str, count: int, numbering_format: Optional[str],
                          item_word_count: Optional[int]) -> str:
    numbering = f"- Use numbering formatted like {numbering_format}.\n" if numbering_format else ''
    word_count = f"- Keep each list item around {item_word_count} words.\n" if item_word_count else ''
    return f"""
You are a professional journalist writing a listicle-style web article.

Title: "{parts.title}"
Do NOT include the title or any <h1> tag in the HTML output.

Outline:
{outline}

{parts.reporting}{parts.tone}{parts.point_of_view}Requirements:
  - Use exactly {count} items.
{numbering}{word_count}{OUTLINE_INTRO_RULES}{parts.requirements_tail}
Write the full article in valid HTML below:
""".strip()


def build_youtube_prompt(parts: PromptParts, transcript: str, video_link: Optional[str]) -> str:
    if transcript:
        transcript_instruction = f"- Use the following transcript as source material:\n\n{transcript}\n\n"
    else:
        transcript_instruction = f"- Use the transcript from this video link as source material: {video_link}\n"
    return f"""
You are a professional journalist writing a web article from a YouTube transcript.

Title: "{parts.title}"
Do NOT include the title or any <h1> tag in the HTML output.

{transcript_instruction}{parts.reporting}{parts.tone}{parts.point_of_view}Requirements:
  - Begin with a 2-3 sentence introduction (no <h2> tags).
  - Organize the article with <h2> headings that follow the video's main points.
  - Under each <h2>, write 2-3 paragraphs.
{parts.requirements_tail}
Write the full article in valid HTML below:
""".strip()


def build_rewrite_prompt(parts: PromptParts, source_text: str, blog_link: Optional[str],
                         length_option: Optional[str], custom_sections: Optional[int]) -> str:
    if source_text:
        rewrite_instruction = f"- Rewrite the following content completely to avoid plagiarism:\n\n{source_text}\n\n"
    else:
        rewrite_instruction = f"- Rewrite the blog post at this URL completely to avoid plagiarism: {blog_link}\n"
    return f"""
You are a professional journalist rewriting an existing blog post into a fresh, original article.

Title: "{parts.title}"
Do NOT include the title or any <h1> tag in the HTML output.

{rewrite_instruction}{parts.reporting}{parts.tone}{parts.point_of_view}Requirements:
  {length_instruction(length_option, custom_sections)}  - Begin with a 2-3 sentence introduction (no <h2> tags).
  - Organize the article with <h2> headings similar to the original structure.
  - Under each <h2>, write 2-3 paragraphs.
{parts.requirements_tail}
Write the full article in valid HTML below:
""".strip()


def build_blog_summary_prompt(text: str) -> str:
    return f"Summarize the following article in bullet points.\n\n{text}"


# ---------- CORRECTIVE INSTRUCTIONS ----------
def missing_sources_instruction(missing: Sequence[str]) -> str:
    listed = '\n'.join(f"- {url}" for url in missing)
    return (
        "Your previous draft did not cite these required sources. Rewrite the article so each one "
        'appears exactly once as an inline <a href="URL" target="_blank">text</a> link inside the body:\n'
        f"{listed}"
    )


def link_count_instruction(min_links: int, found: int) -> str:
    return (
        f"Your previous draft contained only {found} links. Integrate at least {min_links} clickable HTML "
        'links from the provided sources using <a href="URL" target="_blank">text</a>.'
    )


def link_clustering_instruction(max_links_per_block: int) -> str:
    return (
        "Your previous draft bunched its links together. Spread the links across the whole article, "
        f"with no more than {max_links_per_block} links in any single paragraph or list item and "
        "none saved for the final paragraphs."
    )


def word_count_instruction(word_count: int, min_words: int) -> str:
    return (
        f"Your previous response was only {word_count} words. Expand it to at least {min_words} words "
        "while keeping the same structure and links."
    )


# ---------- VERIFICATION ----------
def format_sources_for_verification(sources: Sequence[SourceArticle]) -> str:
    blocks = []
    for position, source in enumerate(sources, start=1):
        blocks.append(
            f"{position}. {source.title or 'Untitled'}\n"
            f"   Published: {format_published_timestamp(source.published_at)}\n"
            f"   URL: {source.url}\n"
            f"   Summary: {source.summary or 'No summary provided.'}"
        )
    return '\n'.join(blocks)


def build_verification_prompt(content: str, sources: Sequence[SourceArticle]) -> str:
    """
    Ask a second model to fact-check the article against its sources.

    Oversized inputs are cut and marked so the reviewer knows the text is partial.
    """
    article = (content or '').strip()
    if len(article) > MAX_ARTICLE_HTML_LENGTH:
        article = f"{article[:MAX_ARTICLE_HTML_LENGTH]}\n{ARTICLE_TRUNCATION_NOTICE}"

    formatted_sources = format_sources_for_verification(sources)
    if formatted_sources and len(formatted_sources) > MAX_SOURCE_PROMPT_LENGTH:
        formatted_sources = f"{formatted_sources[:MAX_SOURCE_PROMPT_LENGTH]}\n{SOURCE_TRUNCATION_NOTICE}"

    return f"""
You are a meticulous fact-checker. Compare the article below with the reporting it was based on.
List every statement that is unsupported by, or contradicts, the sources, and every date that is
stated as the future or past incorrectly relative to the current date.

Respond with a JSON object: {{"issues": [string]}}. Use an empty list when everything checks out.

Sources:
{formatted_sources or 'No sources were provided.'}

Article HTML:
{article}
""".strip()


# ---------- OUTPUT CLEANUP ----------
_LEADING_FENCE_RE = re.compile(r'^```(?:html)?\s*\n?', re.IGNORECASE)
_TRAILING_FENCE_RE = re.compile(r'\n?```\s*$')


def clean_model_output(text: Optional[str]) -> str:
    """Strip markdown code fences the model sometimes wraps HTML in."""
    cleaned = (text or '').strip()
    cleaned = _LEADING_FENCE_RE.sub('', cleaned)
    cleaned = _TRAILING_FENCE_RE.sub('', cleaned)
    return cleaned.strip()
