# services/extraction_service.py
"""
Turns a free-form daily report into the candidate JSON the ingestion
pipeline expects. The LLM is a black box here: anything exposing
`async generate_json(*, system, user) -> dict` can stand in for it.
"""
from __future__ import annotations

import json
import logging
from datetime import date
from typing import Any, Dict, Optional, Protocol

from prometheus_client import Counter, Histogram

from services.ai.llm_service import get_llm_service
from services.errors import ExtractionError

logger = logging.getLogger(__name__)

EXTRACTION_DURATION = Histogram(
    "report_extraction_duration_seconds",
    "Time spent turning one raw report into candidate JSON",
)
EXTRACTION_FAILURES = Counter(
    "report_extraction_failures_total",
    "Raw report extractions that failed",
    ["reason"],
)


class JsonGenerator(Protocol):
    async def generate_json(self, *, system: str, user: str) -> Dict[str, Any]: ...


SYSTEM_PROMPT = (
    "You are a data cleaning expert. Convert crypto market indicator reports "
    "into structured JSON. Return only valid JSON, no prose."
)

OUTPUT_SHAPE = {
    "date": "YYYY-MM-DD",
    "coins": [
        {
            "symbol": "BTC",
            "otcIndex": 1756,
            "entryExitType": "entry",
            "entryExitDay": 25,
            "explosionIndex": 196,
            "schellingPoint": 96900,
            "nearThreshold": False,
        }
    ],
    "liquidity": {
        "btcFundChange": 0.2,
        "ethFundChange": -1.7,
        "solFundChange": 0.8,
        "totalMarketFundChange": 0.5,
        "comments": "...",
    },
    "trendingCoins": [
        {
            "symbol": "TRUMP",
            "otcIndex": 1339,
            "explosionIndex": 81,
            "entryExitType": "entry",
            "entryExitDay": 14,
            "schellingPoint": 11.2,
        }
    ],
    "dailyReminder": "...",
}


def build_user_prompt(raw_text: str, today: Optional[date] = None) -> str:
    year = (today or date.today()).year
    shape = json.dumps(OUTPUT_SHAPE, indent=2, ensure_ascii=False)
    return f"""Convert the following unstructured report into JSON.

Report:
```
{raw_text}
```

Date rules:
1. If the first line of the report is a date like "5.9", it means month 5, day 9 (month first, never day first).
2. The output "date" must then be "{year}-05-09" style: the current year ({year}), two-digit month and day.
3. Never read "5.9" as October 5th or any other order.
4. If the first line spells out the date (e.g. "=> {year}-05-09"), copy that value.
5. If the report has no date, use today's date.

Coin rules:
1. Symbols are uppercase tickers (BTC, ETH, ...). Normalise non-standard names to the common ticker.
2. An entry period ("进场期") is entryExitType="entry"; an exit period ("退场期") is "exit"; otherwise "neutral".
3. entryExitDay is the day count inside the current period.
4. nearThreshold is true when the report says the coin is approaching ("逼近") a threshold.

Liquidity fund changes are in units of 100 million USD; put the narrative text in "comments".

Output exactly this shape:
{shape}
"""


class RawTextExtractor:
    def __init__(self, llm: Optional[JsonGenerator] = None):
        self._llm = llm

    @property
    def llm(self) -> JsonGenerator:
        if self._llm is None:
            self._llm = get_llm_service()
        return self._llm

    async def extract(self, raw_text: str, today: Optional[date] = None) -> Dict[str, Any]:
        """Raises ExtractionError when the call fails or the output is not a JSON object."""
        logger.info("extracting daily report, length=%d", len(raw_text or ""))
        try:
            llm = self.llm
        except ValueError as exc:
            EXTRACTION_FAILURES.labels(reason="not_configured").inc()
            raise ExtractionError(f"Extractor is not configured: {exc}", details=str(exc)) from exc

        try:
            with EXTRACTION_DURATION.time():
                data = await llm.generate_json(
                    system=SYSTEM_PROMPT,
                    user=build_user_prompt(raw_text, today),
                )
        except ValueError as exc:
            EXTRACTION_FAILURES.labels(reason="unparsable").inc()
            logger.error("extractor returned unparsable output: %s", exc)
            raise ExtractionError("Failed to parse the processed data", details=str(exc)) from exc
        except Exception as exc:
            EXTRACTION_FAILURES.labels(reason="provider").inc()
            logger.exception("extractor call failed")
            raise ExtractionError(f"Failed to process data: {exc}", details=str(exc)) from exc

        if not isinstance(data, dict):
            EXTRACTION_FAILURES.labels(reason="unparsable").inc()
            raise ExtractionError(
                "Failed to parse the processed data",
                details=f"expected a JSON object, got {type(data).__name__}",
            )

        logger.info(
            "extraction done: date=%s coins=%s",
            data.get("date"),
            len(data["coins"]) if isinstance(data.get("coins"), list) else "n/a",
        )
        return data
