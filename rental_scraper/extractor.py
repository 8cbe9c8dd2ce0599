"""
BeautifulSoup extraction for Yango Drive pages.
Takes parsed HTML of the results list or of a "view deal" page and
extracts listing cards, mileage terms and insurance options.
"""

import re
from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from bs4 import BeautifulSoup, CData, NavigableString, Tag

from rental_scraper.config import (
    CURRENCY,
    DETAIL_SELECTORS,
    MAX_CARDS,
    NOT_AVAILABLE,
    SELECTORS,
)
from rental_scraper.models import ListingRecord


YEAR_PATTERN = re.compile(r"\d{4}")
TOTAL_PATTERN = re.compile(r"Total:", re.IGNORECASE)
WHITESPACE = re.compile(r"\s+")

BLOCK_TAGS = frozenset({
    "address", "article", "aside", "blockquote", "br", "dd", "div", "dl", "dt", "fieldset",
    "figcaption", "figure", "footer", "form", "h1", "h2", "h3", "h4", "h5", "h6", "header",
    "hr", "label", "li", "main", "nav", "ol", "p", "section", "table", "tbody", "td", "th",
    "thead", "tr", "ul",
})
HIDDEN_TAGS = frozenset({"script", "style", "template", "noscript"})


@dataclass
class CardSnapshot:
    record: ListingRecord
    has_detail: bool


def parse_html(html: str) -> BeautifulSoup:
    return BeautifulSoup(html, "html.parser")


def _text(element: Optional[Tag]) -> str:
    return element.get_text().strip() if element is not None else ""


def classify_price_lines(lines: Iterable[Tuple[str, bool]], currency: str = CURRENCY) -> Dict[str, str]:
    """
    Sort the paragraph lines of a price block into cross / actual / total.

    Args:
        lines: (text, is_crossed_out) for every paragraph of the block
        currency: Currency marker that identifies a price line

    Returns:
        Dict with cross_price, actual_price and total, "N/A" when absent
    """
    prices = {
        "cross_price": NOT_AVAILABLE,
        "actual_price": NOT_AVAILABLE,
        "total": NOT_AVAILABLE,
    }
    for raw_text, crossed_out in lines:
        text = raw_text.strip()
        if TOTAL_PATTERN.search(text):
            prices["total"] = text.replace("Total:", "").strip() or NOT_AVAILABLE
        elif currency in text and crossed_out:
            prices["cross_price"] = text
        elif currency in text:
            prices["actual_price"] = text
    return prices


def extract_prices(price_block: Optional[Tag], selectors: Mapping[str, str] = SELECTORS) -> Dict[str, str]:
    if price_block is None:
        return classify_price_lines([])
    lines = [
        (p.get_text(), p.select_one(selectors["cross_out"]) is not None)
        for p in price_block.find_all("p")
    ]
    return classify_price_lines(lines)


def extract_description(feature_block: Optional[Tag], selectors: Mapping[str, str] = SELECTORS) -> str:
    if feature_block is None:
        return NOT_AVAILABLE
    texts = [_text(span) for span in feature_block.select(selectors["feature_spans"])]
    texts = [text for text in texts if text]
    if not texts:
        return NOT_AVAILABLE
    return WHITESPACE.sub(" ", ", ".join(texts)).strip()


def extract_card(
    soup: BeautifulSoup,
    index: int,
    car_name: str,
    period_label: str,
    selectors: Mapping[str, str] = SELECTORS,
    max_cards: int = MAX_CARDS,
) -> Optional[CardSnapshot]:
    """
    Read the card at index from the results list.

    Returns None when the index is past the card cap, past the last card on
    the page, or when the card has no enclosing container.
    """
    if index >= max_cards:
        return None

    titles = soup.select(selectors["title"])
    if index >= len(titles):
        return None

    title = titles[index]
    container = title.find_parent("div")
    if container is None:
        return None

    model = _text(container.select_one(selectors["model"])) or NOT_AVAILABLE
    year_match = YEAR_PATTERN.search(model)

    feature_blocks = soup.select(selectors["features"])
    price_blocks = soup.select(selectors["price"])
    buttons = soup.select(selectors["detail_button"])

    record = ListingRecord(
        car_name=_text(title) or NOT_AVAILABLE,
        model=model,
        year=year_match.group(0) if year_match else NOT_AVAILABLE,
        description=extract_description(
            feature_blocks[index] if index < len(feature_blocks) else None, selectors
        ),
        original_vehicle=car_name,
        period=period_label,
        **extract_prices(price_blocks[index] if index < len(price_blocks) else None, selectors),
    )
    return CardSnapshot(record=record, has_detail=index < len(buttons))


def extract_mileage(
    soup: BeautifulSoup,
    selectors: Mapping[str, str] = DETAIL_SELECTORS,
    currency: str = CURRENCY,
) -> str:
    """Compose "<km> km, then <price> <currency> per km" from the mileage section"""
    mileage_section = None
    for section in soup.select(selectors["island"]):
        heading = section.find("h3")
        if heading is not None and "mileage" in heading.get_text().lower():
            mileage_section = section
            break

    if mileage_section is None:
        return NOT_AVAILABLE

    titles = [_text(el) for el in mileage_section.select(selectors["slot_title"])]
    subtitles = [_text(el) for el in mileage_section.select(selectors["slot_subtitle"])]
    combined = " ".join(titles + subtitles)

    km_match = re.search(r"([\d,]+)\s*km", combined, re.IGNORECASE)
    price_match = re.search(rf"{re.escape(currency)}\s?(\d+(\.\d+)?)", combined, re.IGNORECASE)

    if km_match and price_match:
        km = km_match.group(1).replace(",", "")
        return f"{km} km, then {price_match.group(1)} {currency} per km"
    return NOT_AVAILABLE


def _visible_lines(section: Tag) -> List[str]:
    """
    Rendered lines of a section: one line per block-level element, with the
    text of inline descendants (<b>, <span>, ...) kept on the same line.
    """
    lines = []
    buffer = []

    def flush():
        line = WHITESPACE.sub(" ", "".join(buffer)).strip()
        if line:
            lines.append(line)
        buffer.clear()

    def walk(node: Tag):
        for child in node.children:
            if isinstance(child, Tag):
                if child.name in HIDDEN_TAGS:
                    continue
                is_block = child.name in BLOCK_TAGS
                if is_block:
                    flush()
                walk(child)
                if is_block:
                    flush()
            elif isinstance(child, NavigableString) and type(child) in (NavigableString, CData):
                buffer.append(str(child))

    walk(section)
    flush()
    return lines


def extract_insurance_options(
    soup: BeautifulSoup,
    selectors: Mapping[str, str] = DETAIL_SELECTORS,
    currency: str = CURRENCY,
) -> str:
    """Collect the insurance, excess and deposit lines of the booking form"""
    section = soup.select_one(selectors["insurance"])
    if section is None:
        return NOT_AVAILABLE

    excess = re.compile(rf"excess amount.*\d+.*{re.escape(currency)}", re.IGNORECASE)
    deposit_free = re.compile(rf"deposit[- ]free ride.*{re.escape(currency)}", re.IGNORECASE)

    lines = _visible_lines(section)
    result = []
    for i, line in enumerate(lines):
        if "Comprehensive Insurance" in line or excess.search(line) or deposit_free.search(line):
            result.append(line)
        elif line.lower() == "deposit" and i + 1 < len(lines) and currency in lines[i + 1]:
            result.append(f"or {line} {lines[i + 1]}")

    return "\n".join(result) if result else NOT_AVAILABLE


def enrich_record(record: ListingRecord, soup: BeautifulSoup) -> ListingRecord:
    """Fill the detail-page fields of record in place"""
    record.mileage = extract_mileage(soup)
    record.insurance_options = extract_insurance_options(soup)
    return record
