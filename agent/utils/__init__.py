"""
Utility functions shared by the extractor, the tools and the prompts.

- date_parser: Spanish natural-language dates and strict ISO parsing
"""

from agent.utils.date_parser import (
    LIMA_TZ,
    DateParseError,
    calculate_nights,
    extract_date_range,
    find_natural_date,
    format_date_spanish,
    get_weekday_name,
    parse_iso_date,
    today_in,
)

__all__ = [
    "LIMA_TZ",
    "DateParseError",
    "calculate_nights",
    "extract_date_range",
    "find_natural_date",
    "format_date_spanish",
    "get_weekday_name",
    "parse_iso_date",
    "today_in",
]
