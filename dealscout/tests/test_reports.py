"""Tests for investment memo generation and plain-text rendering."""
from __future__ import annotations

from datetime import datetime

import pytest

from dealscout.reports import (
    REPORT_COMPANY_IDS,
    SECTION_ORDERS,
    SECTION_TITLES,
    _report_date,
    emphasized_indices,
    generate_report,
    render_report_text,
    report_filename,
)


class TestGenerateReport:
    @pytest.mark.parametrize("company_id", REPORT_COMPANY_IDS)
    def test_every_company_has_full_report(self, company_id):
        report = generate_report(company_id)
        assert report.header.company_name
        assert report.executive_summary
        assert len(report.country_analysis.table) == 6
        assert report.financial_analysis.quality_of_earnings
        assert report.operational_and_value_creation
        assert report.exit_feasibility
        assert report.risk_assessment is not None
        assert report.risk_assessment.company_id == company_id

    def test_default_template_is_growth(self):
        report = generate_report("mantla")
        assert report.template_type == "growth"
        assert report.template_subtitle == "PE Growth Investment Memo"
        assert report.section_order == list(SECTION_ORDERS["growth"])

    @pytest.mark.parametrize("template", ["growth", "buyout", "venture"])
    def test_section_order_is_permutation(self, template):
        report = generate_report("instaworks", template)
        assert sorted(report.section_order) == sorted(SECTION_TITLES)
        assert report.section_order[0] == "executiveSummary"

    def test_growth_emphasis(self):
        report = generate_report("mantla", "growth")
        assert report.emphasis_items["executiveSummary"] == [1, 3, 4]

    def test_buyout_emphasis(self):
        report = generate_report("mantla", "buyout")
        assert report.emphasis_items["exitFeasibility"] == [0, 4]

    def test_emphasis_keys(self):
        report = generate_report("disprztech", "venture")
        assert set(report.emphasis_items) == {
            "executiveSummary", "countryAnalysisKeyPoints", "operationalAndValueCreation", "exitFeasibility",
        }

    def test_unknown_company(self):
        assert generate_report("nope") is None

    def test_unknown_template(self):
        with pytest.raises(ValueError):
            generate_report("mantla", "seed")

    def test_wire_format_is_camel_case(self):
        wire = generate_report("mantla").to_wire()
        assert "executiveSummary" in wire
        assert "companyName" in wire["header"]
        assert "sectionOrder" in wire
        assert "keyContributors" in wire["riskAssessment"]


class TestHelpers:
    def test_emphasized_indices_case_insensitive(self):
        items = ["Strong IPO pipeline", "nothing here", "ipo later"]
        assert emphasized_indices(items, ("IPO",)) == [0, 2]

    def test_report_date(self):
        assert _report_date(datetime(2025, 3, 7)) == "March 7, 2025"

    def test_filename(self):
        assert report_filename(generate_report("mantla")) == "Mantla_Platform_Investment_Memo.txt"
        assert report_filename(generate_report("disprztech")) == "Disprztech_Investment_Memo.txt"


class TestRenderReportText:
    def test_contains_header_and_sections(self):
        text = render_report_text(generate_report("mantla"))
        assert text.startswith("Mantla Platform\n")
        assert "PE Growth Investment Memo (PE Growth)" in text
        for title in SECTION_TITLES.values():
            assert title.upper() in text

    def test_sections_follow_template_order(self):
        growth = render_report_text(generate_report("mantla", "growth"))
        assert growth.index("FINANCIAL ANALYSIS") < growth.index("COUNTRY ANALYSIS")
        buyout = render_report_text(generate_report("mantla", "buyout"))
        assert buyout.index("EXIT FEASIBILITY") < buyout.index("COUNTRY ANALYSIS")

    def test_emphasized_bullets_marked(self):
        text = render_report_text(generate_report("mantla", "growth"))
        assert "  2. * Revenue grew 42% YoY" in text
        assert "  1. Mantla Platform is" in text

    def test_risk_block_and_footer(self):
        text = render_report_text(generate_report("mantla"))
        assert "Overall Risk Grade: Medium (41.7%, 30 points)" in text
        assert "Key Contributors: Termination (7/17), Liability (5/13)" in text
        assert text.rstrip().endswith("by DealScout")
