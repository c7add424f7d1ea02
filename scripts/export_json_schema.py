#!/usr/bin/env python3
"""
Export JSON Schema files from Pydantic models for the lawyers scraper.
- Draft: 2020-12
- Sources: lawdir/schemas.py (LawyerRecord, RunStatistics), lawdir/config.py (RunInput)
- Outputs: schemas/*.schema.json
"""
import json
import sys
from pathlib import Path
from typing import Any, Dict, Optional

# Ensure project root execution
ROOT = Path(__file__).resolve().parents[1]
SCHEMAS_DIR = ROOT / "schemas"

sys.path.insert(0, str(ROOT))

from lawdir.config import RunInput  # noqa: E402
from lawdir.schemas import LawyerRecord, RunStatistics  # noqa: E402

SCHEMA_VERSION = "https://json-schema.org/draft/2020-12/schema"


def add_common_headers(schema: Dict[str, Any], title: str, description: str, example: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    schema.setdefault("$schema", SCHEMA_VERSION)
    schema.setdefault("title", title)
    schema.setdefault("description", description)
    if example is not None:
        schema.setdefault("examples", [example])
    return schema


def run_input_example() -> dict:
    return {
        "practiceArea": "bankruptcy-debt",
        "state": "al",
        "city": "Birmingham",
        "maxLawyers": 50,
        "includeContactInfo": False,
        "proxyConfiguration": {"useApifyProxy": True},
    }


def lawyer_example() -> dict:
    return {
        "name": "Jane Doe",
        "rating": 9.8,
        "reviewCount": 42,
        "practiceAreas": ["Bankruptcy", "Debt Relief"],
        "location": "Birmingham, AL, 35203",
        "phone": "(205) 555-0100",
        "email": "",
        "website": "https://www.example-law.com",
        "yearsLicensed": 18,
        "barAdmissions": ["Alabama"],
        "languages": ["English", "Spanish"],
        "profileUrl": "https://www.avvo.com/attorneys/35203-al-jane-doe-123456.html",
        "bio": "Jane Doe has represented individuals and small businesses in Chapter 7 and Chapter 13 cases since 2007.",
        "scrapedAt": "2025-09-04T10:15:05Z",
    }


def statistics_example() -> dict:
    return {
        "totalLawyersScraped": 50,
        "pagesProcessed": 3,
        "extractionMethod": "JSON-LD",
        "duration": "74 seconds",
        "timestamp": "2025-09-04T10:16:19Z",
        "blockedProfiles": 0,
        "resources": {"cpu_percent": 12.5, "rss_mb": 188.4},
    }


def save_schema(model, path: Path, title: str, description: str, example: dict):
    schema = model.model_json_schema(by_alias=True)  # pydantic v2
    schema = add_common_headers(schema, title, description, example)
    path.write_text(json.dumps(schema, indent=2, ensure_ascii=False) + "\n", encoding="utf-8")
    print(f"Wrote {path.relative_to(ROOT)}")


def main():
    SCHEMAS_DIR.mkdir(parents=True, exist_ok=True)
    save_schema(
        RunInput,
        SCHEMAS_DIR / "input.schema.json",
        "Run input",
        "Start URL, or practice area + state (+ city) to build one from, plus run limits.",
        run_input_example(),
    )
    save_schema(
        LawyerRecord,
        SCHEMAS_DIR / "lawyer.schema.json",
        "Lawyer",
        "One lawyer listing as pushed to the dataset.",
        lawyer_example(),
    )
    save_schema(
        RunStatistics,
        SCHEMAS_DIR / "statistics.schema.json",
        "Run statistics",
        "Summary stored under the 'statistics' key when the run ends.",
        statistics_example(),
    )


if __name__ == "__main__":
    main()
