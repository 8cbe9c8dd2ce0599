"""
Tests for card, mileage and insurance extraction from HTML fixtures.
"""

import pytest

from rental_scraper.extractor import (
    classify_price_lines,
    enrich_record,
    extract_card,
    extract_insurance_options,
    extract_mileage,
    parse_html,
)
from rental_scraper.models import ListingRecord


PERIOD = "2025-06-01 15:30:00 - 2025-06-03 15:30:00"


class TestExtractCard:
    def test_first_card(self, list_html):
        snapshot = extract_card(parse_html(list_html), 0, "Toyota Camry", PERIOD)
        record = snapshot.record
        assert record.car_name == "Toyota Camry"
        assert record.model == "Camry 2023 or similar"
        assert record.year == "2023"
        assert record.description == "Automatic, 5 seats, Free delivery"
        assert record.cross_price == "AED 180"
        assert record.actual_price == "AED 150"
        assert record.total == "AED 300"
        assert record.original_vehicle == "Toyota Camry"
        assert record.period == PERIOD
        assert record.mileage == "N/A"
        assert record.insurance_options == "N/A"
        assert snapshot.has_detail is False

    def test_second_card_without_cross_price(self, list_html):
        record = extract_card(parse_html(list_html), 1, "Toyota Camry", PERIOD).record
        assert record.car_name == "Toyota Camry Hybrid"
        assert record.year == "2022"
        assert record.description == "Hybrid"
        assert record.cross_price == "N/A"
        assert record.actual_price == "AED 1,250"
        assert record.total == "AED 2,500"

    def test_model_without_year(self, deals_html):
        snapshot = extract_card(parse_html(deals_html), 1, "Nissan Sunny", PERIOD)
        assert snapshot.record.model == "Sunny"
        assert snapshot.record.year == "N/A"
        assert snapshot.has_detail is True

    def test_index_past_last_card(self, list_html):
        assert extract_card(parse_html(list_html), 2, "Toyota Camry", PERIOD) is None

    def test_index_at_card_cap(self, list_html):
        assert extract_card(parse_html(list_html), 1, "Toyota Camry", PERIOD, max_cards=1) is None

    def test_no_cards(self, empty_html):
        assert extract_card(parse_html(empty_html), 0, "Toyota Camry", PERIOD) is None

    def test_title_without_container(self):
        html = '<body><span class="Card_CardTitleMedium__korrS">Orphan</span></body>'
        assert extract_card(parse_html(html), 0, "Orphan", PERIOD) is None

    def test_card_with_missing_blocks(self):
        html = (
            '<div><span class="Card_CardTitleMedium__korrS">Kia K5</span></div>'
        )
        record = extract_card(parse_html(html), 0, "Kia K5", PERIOD).record
        assert record.car_name == "Kia K5"
        assert record.model == "N/A"
        assert record.description == "N/A"
        assert record.actual_price == "N/A"
        assert record.total == "N/A"


class TestClassifyPriceLines:
    def test_all_three_kinds(self):
        prices = classify_price_lines([("AED 200", True), ("AED 170", False), ("Total: AED 340", False)])
        assert prices == {"cross_price": "AED 200", "actual_price": "AED 170", "total": "AED 340"}

    def test_lines_without_currency_are_ignored(self):
        prices = classify_price_lines([("per day", False), ("USD 10", True)])
        assert set(prices.values()) == {"N/A"}

    def test_same_input_same_output(self):
        lines = [("AED 99", False), ("Total: AED 198", False)]
        assert classify_price_lines(lines) == classify_price_lines(lines)


class TestDetailPage:
    def test_mileage(self, detail_html):
        assert extract_mileage(parse_html(detail_html)) == "1500 km, then 0.5 AED per km"

    def test_mileage_with_thousands_separator(self):
        html = (
            '<div class="Island_IslandWrap__QuZPl"><h3>Mileage</h3>'
            '<div class="SlotText_Title__gHEmU">3,000 km per month</div>'
            '<div class="SlotText_Subtitle__yHTPE">Extra km AED 1</div></div>'
        )
        assert extract_mileage(parse_html(html)) == "3000 km, then 1 AED per km"

    def test_mileage_without_price(self):
        html = (
            '<div class="Island_IslandWrap__QuZPl"><h3>Mileage</h3>'
            '<div class="SlotText_Title__gHEmU">Unlimited km</div></div>'
        )
        assert extract_mileage(parse_html(html)) == "N/A"

    def test_mileage_section_missing(self, list_html):
        assert extract_mileage(parse_html(list_html)) == "N/A"

    def test_insurance_options(self, detail_html):
        assert extract_insurance_options(parse_html(detail_html)) == "\n".join([
            "Comprehensive Insurance",
            "Excess amount 1000 - 5000 AED",
            "Deposit-free ride for AED 150",
            "or Deposit AED 1500",
        ])

    def test_insurance_lines_with_inline_markup(self):
        html = (
            '<div class="BookFormInsuranceOptions_island__QC71c">'
            '<div><span>Comprehensive</span> <span>Insurance</span></div>'
            '<div>Excess amount <b>1000</b> - 5000 AED</div>'
            '<div>Deposit-free ride for <span>AED 150</span></div>'
            '<div><label>Deposit</label><p><b>AED</b> 1500</p></div>'
            '</div>'
        )
        assert extract_insurance_options(parse_html(html)) == "\n".join([
            "Comprehensive Insurance",
            "Excess amount 1000 - 5000 AED",
            "Deposit-free ride for AED 150",
            "or Deposit AED 1500",
        ])

    def test_insurance_section_missing(self, list_html):
        assert extract_insurance_options(parse_html(list_html)) == "N/A"

    @pytest.mark.parametrize("body", [
        "<div><span>Child seat</span></div>",
        "<div><span>Deposit</span></div>",
    ])
    def test_insurance_section_without_matches(self, body):
        html = f'<div class="BookFormInsuranceOptions_island__QC71c">{body}</div>'
        assert extract_insurance_options(parse_html(html)) == "N/A"

    def test_enrich_record_in_place(self, detail_html):
        record = ListingRecord(car_name="Nissan Sunny")
        result = enrich_record(record, parse_html(detail_html))
        assert result is record
        assert record.mileage == "1500 km, then 0.5 AED per km"
        assert record.insurance_options.startswith("Comprehensive Insurance")
