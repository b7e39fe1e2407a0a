#!/usr/bin/env python3
"""
Airtable REST client for the recipe table.
"""

import logging
from typing import Any, Dict, List, Optional
from urllib.parse import quote

from core.exceptions import UpstreamError
from .http_client import JsonHttpClient, flatten_params
from .schemas import AirtableRecord, AirtableResponse, parse_payload

logger = logging.getLogger(__name__)

AIRTABLE_API_URL = "https://api.airtable.com/v0"
MAX_PAGES = 10


class AirtableClient(JsonHttpClient):
    """Async Airtable client bound to one base and table."""

    service_name = "Airtable"

    def __init__(self, api_key: str, base_id: str, table_name: str, **kwargs):
        super().__init__(**kwargs)
        if not (api_key and base_id and table_name):
            raise ValueError("Airtable API key, base id and table name are required")
        self.api_key = api_key
        self.base_id = base_id
        self.table_name = table_name

    @property
    def table_url(self) -> str:
        return f"{AIRTABLE_API_URL}/{self.base_id}/{quote(self.table_name, safe='')}"

    async def list_records(self, filter_formula: Optional[str] = None, max_records: Optional[int] = None,
                           fields: Optional[List[str]] = None) -> List[AirtableRecord]:
        """
        List records, following pagination offsets.

        Args:
            filter_formula: Airtable ``filterByFormula`` expression
            max_records: Upper bound on returned records
            fields: Field names to return

        Returns:
            Validated records

        Raises:
            UpstreamError: If Airtable fails or returns an unexpected payload
        """
        params: Dict[str, Any] = {
            'filterByFormula': filter_formula,
            'maxRecords': max_records,
            'fields[]': fields,
        }
        headers = {'Authorization': f"Bearer {self.api_key}"}

        records: List[AirtableRecord] = []
        offset: Optional[str] = None
        for _ in range(MAX_PAGES):
            page_params = dict(params, offset=offset)
            payload = await self._get_json(self.table_url, params=flatten_params(page_params), headers=headers)
            response = parse_payload(self.service_name, payload, AirtableResponse)
            records.extend(response.records)
            offset = response.offset
            if not offset or (max_records and len(records) >= max_records):
                break

        if max_records:
            records = records[:max_records]
        logger.info(f"Fetched {len(records)} Airtable records")
        return records

    async def test_connection(self) -> bool:
        try:
            await self.list_records(max_records=1)
            return True
        except UpstreamError as e:
            logger.error(f"Airtable connection test failed: {e}")
            return False
