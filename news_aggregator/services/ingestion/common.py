import calendar
import time

from bs4 import BeautifulSoup


def normalize_text(text: str | None) -> str:
    if not text:
        return ""
    return " ".join(text.split())


def html_to_text(html: str | None) -> str:
    if not html:
        return ""
    return normalize_text(BeautifulSoup(html, "html.parser").get_text(" ", strip=True))


def struct_time_to_ms(value: time.struct_time | None) -> int | None:
    if value is None:
        return None
    millis = calendar.timegm(value) * 1000
    return millis if millis >= 0 else None
