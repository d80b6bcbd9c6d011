from datetime import date

import pytest

from apps.pacewise.api.v1.helpers.normalizer import (
    CARE,
    NURSE,
    SUPPORT,
    conversion_category,
    layout_for,
    normalize_row,
    normalize_rows,
    parse_number,
)
from conftest import FB_HEADERS, GOOGLE_HEADERS


class TestParseNumber:
    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("£1,234.50", 1234.5),
            ("1,500 GBP", 1500.0),
            ("2.35%", 2.35),
            ("-12.5", -12.5),
            ("$ 80", 80.0),
            (42, 42.0),
            (3.5, 3.5),
        ],
    )
    def test_strips_formatting(self, raw, expected):
        assert parse_number(raw) == pytest.approx(expected)

    @pytest.mark.parametrize("raw", ["", "n/a", "--", "1.2.3", None])
    def test_unparsable_is_zero(self, raw):
        assert parse_number(raw) == 0.0


class TestHeaderLayout:
    def test_google_export(self):
        layout = layout_for(GOOGLE_HEADERS)
        assert layout.date == 0
        assert layout.campaign == 1
        assert layout.cost == 2
        assert layout.ctr == 3
        assert layout.daily_budget == 4
        assert layout.identity is None
        assert layout.conversions == ((5, CARE),)

    def test_facebook_export(self):
        layout = layout_for(FB_HEADERS)
        assert layout.date == 0
        assert layout.campaign == 1
        assert layout.identity == 2
        assert layout.cost == 3
        assert layout.ctr == 4
        assert layout.daily_budget == 5
        assert layout.conversions == ((6, CARE), (7, NURSE))

    def test_each_header_claims_one_field(self):
        layout = layout_for(["Cost per conversion", "Conv. rate", "Conversion value", "Spend"])
        assert layout.conversions == ()
        assert layout.cost == 3

    def test_campaign_status_column_does_not_claim_campaign(self):
        layout = layout_for(["Campaign status", "Campaign", "Day", "Cost", "Budget amount"])
        assert layout.campaign == 1
        assert (layout.date, layout.cost, layout.daily_budget) == (2, 3, 4)

    @pytest.mark.parametrize(
        "header",
        ["Campaign ID", "Campaign type", "Campaign state", "Campaign budget"],
    )
    def test_campaign_attribute_columns_are_ignored(self, header):
        layout = layout_for([header, "Date", "Spend"])
        assert layout.campaign is None

    def test_exact_campaign_name_replaces_partial_match(self):
        layout = layout_for(["Date", "Campaign (GBP)", "Campaign name"])
        assert layout.campaign == 2

    def test_headers_are_trimmed_and_case_insensitive(self):
        layout = layout_for(["  DATE ", "COST", "Budget Amount"])
        assert (layout.date, layout.cost, layout.daily_budget) == (0, 1, 2)

    def test_layout_is_cached_per_header_set(self):
        assert layout_for(list(GOOGLE_HEADERS)) is layout_for(tuple(GOOGLE_HEADERS))


@pytest.mark.parametrize(
    "header, category",
    [
        ("Nurse applications", NURSE),
        ("Nursing conversions", NURSE),
        ("Support worker apps", SUPPORT),
        ("Care applications", CARE),
        ("Conversions", CARE),
    ],
)
def test_conversion_category(header, category):
    assert conversion_category(header) == category


class TestNormalizeRow:
    def test_google_row(self):
        record = normalize_row(
            GOOGLE_HEADERS,
            ["2025-06-01", "Care Search", "£100.00", "2.5%", "50", "3"],
        )
        assert record.date == date(2025, 6, 1)
        assert record.cost == 100.0
        assert record.ctr == 2.5
        assert record.daily_budget == 50.0
        assert record.care_count == 3.0
        assert record.identity_key == "Care Search"
        assert record.campaign == "Care Search"

    def test_adset_name_wins_identity(self):
        record = normalize_row(
            FB_HEADERS,
            ["10/06/2025", "Care Leads", "Adset A", "150.50", "1.5", "20", "1", "2"],
        )
        assert record.identity_key == "Adset A"
        assert record.campaign == "Care Leads"
        assert (record.care_count, record.nurse_count) == (1.0, 2.0)

    def test_short_row_reads_missing_cells_as_empty(self):
        record = normalize_row(GOOGLE_HEADERS, ["2025-06-01", "Care Search", "10"])
        assert record.cost == 10.0
        assert record.daily_budget == 0.0
        assert record.care_count == 0.0

    def test_same_category_columns_add(self):
        headers = ["Date", "Care applications", "Care conversions", "Support apps"]
        record = normalize_row(headers, ["2025-06-01", "2", "3", "1"])
        assert record.care_count == 5.0
        assert record.support_count == 1.0

    def test_bad_date_never_raises(self):
        record = normalize_row(GOOGLE_HEADERS, ["Total", "", "900", "", "", ""])
        assert record.date is None
        assert record.cost == 900.0


class TestNormalizeRows:
    def test_header_only_is_empty(self):
        assert normalize_rows([GOOGLE_HEADERS]) == []
        assert normalize_rows([]) == []
        assert normalize_rows(None) == []

    def test_skips_blank_rows(self, google_rows):
        records = normalize_rows(google_rows + [[]])
        assert len(records) == 3
