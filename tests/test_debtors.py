"""Tests for the overdue receivables analysis."""

from datetime import date, timedelta
from decimal import Decimal

import pytest
from conftest import make_invoice

from pohoda_digest.modules.debtors import (
    AgeBucket,
    DebtorAggregator,
    DebtorsModule,
    overdue_days,
)

AS_OF = date(2024, 3, 31)


def days_ago(days: int) -> date:
    return AS_OF - timedelta(days=days)


class TestAgeBucket:
    """Tests for bucket assignment."""

    @pytest.mark.parametrize(
        ("days", "bucket"),
        [
            (0, AgeBucket.DAYS_1_30),
            (1, AgeBucket.DAYS_1_30),
            (30, AgeBucket.DAYS_1_30),
            (31, AgeBucket.DAYS_31_60),
            (60, AgeBucket.DAYS_31_60),
            (61, AgeBucket.DAYS_61_90),
            (90, AgeBucket.DAYS_61_90),
            (91, AgeBucket.DAYS_90_PLUS),
            (400, AgeBucket.DAYS_90_PLUS),
        ],
    )
    def test_boundaries(self, days, bucket):
        assert AgeBucket.for_days(days) is bucket

    def test_overdue_days_never_negative(self):
        assert overdue_days(AS_OF + timedelta(days=10), AS_OF) == 0
        assert overdue_days(AS_OF, AS_OF) == 0
        assert overdue_days(None, AS_OF) == 0
        assert overdue_days(days_ago(16), AS_OF) == 16


class TestDebtorAggregator:
    """Tests for DebtorAggregator.analyze()."""

    def test_empty_input(self):
        """Test that no overdue invoices gives a zeroed result."""
        analysis = DebtorAggregator().analyze([], AS_OF)

        assert analysis.total_overdue_count == 0
        assert analysis.debtor_count == 0
        assert analysis.currency_totals == {}
        assert analysis.by_age_group == {}
        assert analysis.top_debtors == []

        data = analysis.to_dict()
        assert data["summary"]["total_overdue_amount"] == "0,00 CZK"
        assert data["summary"]["as_of_date"] == "2024-03-31"
        assert data["by_age_groups"] == {}

    def test_sixteen_days_lands_in_first_bucket(self):
        analysis = DebtorAggregator().analyze([make_invoice(due_date=days_ago(16))], AS_OF)

        assert analysis.by_age_group[AgeBucket.DAYS_1_30].count == 1
        assert analysis.top_debtors[0].oldest_overdue_days == 16

    def test_not_yet_due_maps_to_first_bucket(self):
        records = [
            make_invoice(due_date=AS_OF + timedelta(days=3)),
            make_invoice(due_date=None),
        ]

        analysis = DebtorAggregator().analyze(records, AS_OF)

        assert analysis.by_age_group[AgeBucket.DAYS_1_30].count == 2
        assert analysis.top_debtors[0].oldest_overdue_days == 0

    def test_bucket_counts_sum_to_input_length(self):
        """Test that every record lands in exactly one bucket."""
        records = [
            make_invoice(customer="A", due_date=days_ago(5)),
            make_invoice(customer="B", due_date=days_ago(45), currency="EUR", amount="20"),
            make_invoice(customer="C", due_date=days_ago(75)),
            make_invoice(customer="D", due_date=days_ago(120)),
            make_invoice(customer="D", due_date=days_ago(91)),
        ]

        analysis = DebtorAggregator().analyze(records, AS_OF)

        assert list(analysis.by_age_group) == list(AgeBucket)
        assert sum(g.count for g in analysis.by_age_group.values()) == len(records)
        assert analysis.by_age_group[AgeBucket.DAYS_90_PLUS].count == 2
        assert analysis.by_age_group[AgeBucket.DAYS_31_60].totals == {"EUR": Decimal("20")}
        assert analysis.by_age_group[AgeBucket.DAYS_61_90].totals == {"CZK": Decimal("1000")}

    def test_debtor_rollup(self):
        records = [
            make_invoice(customer="Slow Payer", number="FV1", amount="100", due_date=days_ago(10)),
            make_invoice(customer="Slow Payer", number="FV2", amount="300", due_date=days_ago(70)),
            make_invoice(customer="Fast Payer", number="FV3", amount="50", due_date=days_ago(2)),
        ]

        analysis = DebtorAggregator().analyze(records, AS_OF)

        assert analysis.debtor_count == 2
        slow = analysis.top_debtors[0]
        assert slow.name == "Slow Payer"
        assert slow.invoice_count == 2
        assert slow.total_amount == Decimal("400")
        assert slow.oldest_overdue_days == 70
        assert [i.number for i in slow.invoices] == ["FV1", "FV2"]

    def test_retains_five_most_recent_invoices(self):
        records = [
            make_invoice(customer="Serial", number=f"FV{i}", due_date=days_ago(i + 1))
            for i in range(8)
        ]

        analysis = DebtorAggregator().analyze(records, AS_OF)

        debtor = analysis.top_debtors[0]
        assert debtor.invoice_count == 8
        assert [i.number for i in debtor.invoices] == ["FV3", "FV4", "FV5", "FV6", "FV7"]
        assert len(debtor.to_dict()["invoices"]) == 5

    def test_top_debtors_capped_and_sorted(self):
        records = [
            make_invoice(customer=f"Debtor {i:02d}", amount=str(100 + i), due_date=days_ago(40))
            for i in range(25)
        ]

        analysis = DebtorAggregator().analyze(records, AS_OF)

        totals = [d.total_amount for d in analysis.top_debtors]
        assert len(totals) == 20
        assert totals == sorted(totals, reverse=True)
        assert analysis.top_debtors[0].name == "Debtor 24"
        assert analysis.debtor_count == 25

    def test_main_currency_is_first_seen(self):
        """Test that the summary reports the first currency, not the largest."""
        records = [
            make_invoice(customer="A", currency="EUR", amount="10", due_date=days_ago(5)),
            make_invoice(customer="B", currency="CZK", amount="99999", due_date=days_ago(5)),
        ]

        analysis = DebtorAggregator().analyze(records, AS_OF)

        assert analysis.main_currency == "EUR"
        assert analysis.total_overdue_amount == Decimal("10")
        assert analysis.to_dict()["summary"]["total_overdue_amount"] == "10,00 EUR"
        assert analysis.to_dict()["by_currency"] == {
            "EUR": "10,00 EUR",
            "CZK": "99 999,00 CZK",
        }

    def test_to_dict_invoice_rows(self):
        analysis = DebtorAggregator().analyze(
            [make_invoice(customer="ABC", number="FV7", amount="1500", due_date=days_ago(33))],
            AS_OF,
        )

        debtor = analysis.to_dict()["top_debtors"][0]
        assert debtor == {
            "name": "ABC",
            "invoice_count": 1,
            "total_amount": "1 500,00 CZK",
            "oldest_overdue_days": 33,
            "invoices": [
                {
                    "number": "FV7",
                    "amount": "1 500,00 CZK",
                    "due_date": "2024-02-27",
                    "overdue_days": 33,
                }
            ],
        }


class TestDebtorsModule:
    """Tests for DebtorsModule.process()."""

    def test_uses_period_end_as_of_date(self, fake_source, january):
        fake_source.overdue_invoices = [make_invoice(due_date=date(2024, 1, 1))]

        result = DebtorsModule().process(fake_source, january)

        assert result.success is True
        assert fake_source.calls == [("overdue_invoices", {"as_of_date": january.end})]
        assert result.extra == {"as_of_date": "2024-01-31"}
        assert result.data["by_age_groups"]["1-30"]["count"] == 1
        assert result.to_dict()["metadata"]["as_of_date"] == "2024-01-31"

    def test_requires_overdue_tracking(self, fake_source, january):
        fake_source.features = {"invoice_analysis"}

        result = DebtorsModule().process(fake_source, january)

        assert result.success is False
        assert "overdue_tracking" in result.error
        assert fake_source.calls == []
