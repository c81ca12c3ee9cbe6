"""Tests for the issued invoice analysis."""

from decimal import Decimal

from conftest import make_invoice

from pohoda_digest.models import InvoiceState, normalize_invoice
from pohoda_digest.modules.invoices import InvoiceAggregator, OutcomingInvoicesModule


class TestInvoiceAggregator:
    """Tests for InvoiceAggregator.analyze()."""

    def test_empty_input(self):
        """Test that no invoices gives a zeroed result."""
        analysis = InvoiceAggregator().analyze([])

        assert analysis.total_count == 0
        assert analysis.active_count == 0
        assert analysis.cancelled_count == 0
        assert analysis.currencies == []
        assert analysis.currency_totals == {}
        assert analysis.by_document_type == {}
        assert analysis.top_customers == []
        assert analysis.to_dict()["summary"]["document_types_count"] == 0

    def test_two_customers_example(self):
        """Test the basic totals and ranking."""
        records = [
            normalize_invoice({"amount": 25000, "currency": "CZK", "customer": "ABC"}),
            normalize_invoice({"amount": 15000, "currency": "CZK", "customer": "XYZ"}),
        ]

        analysis = InvoiceAggregator().analyze(records)

        assert analysis.currency_totals == {"CZK": Decimal("40000")}
        assert [(c.name, c.total) for c in analysis.top_customers] == [
            ("ABC", Decimal("25000")),
            ("XYZ", Decimal("15000")),
        ]

    def test_cancelled_excluded_from_totals(self):
        """Test that cancelled invoices only count in status tallies."""
        records = [
            make_invoice(customer="ABC", amount="1000"),
            make_invoice(customer="ABC", amount="5000", state=InvoiceState.CANCELLED),
            make_invoice(customer="Ghost", amount="9000", state=InvoiceState.CANCELLED),
        ]

        analysis = InvoiceAggregator().analyze(records)

        assert analysis.total_count == 3
        assert analysis.active_count == 1
        assert analysis.cancelled_count == 2
        assert analysis.currency_totals == {"CZK": Decimal("1000")}
        assert analysis.by_document_type["issuedInvoice"].count == 1
        assert [c.name for c in analysis.top_customers] == ["ABC"]
        assert analysis.top_customers[0].total == Decimal("1000")

    def test_document_type_counts_sum_to_active(self):
        """Test that document type buckets account for every active invoice."""
        records = [
            make_invoice(document_type="issuedInvoice"),
            make_invoice(document_type="issuedCreditNotice", amount="-200"),
            make_invoice(document_type="issuedInvoice", currency="EUR", amount="40"),
            make_invoice(document_type="issuedAdvanceInvoice", state=InvoiceState.CANCELLED),
        ]

        analysis = InvoiceAggregator().analyze(records)

        assert sum(b.count for b in analysis.by_document_type.values()) == analysis.active_count
        assert analysis.document_types == [
            "issuedInvoice",
            "issuedCreditNotice",
            "issuedAdvanceInvoice",
        ]
        assert analysis.by_document_type["issuedInvoice"].totals == {
            "CZK": Decimal("1000"),
            "EUR": Decimal("40"),
        }
        assert "issuedAdvanceInvoice" not in analysis.by_document_type

    def test_currencies_in_first_seen_order(self):
        records = [
            make_invoice(currency="EUR", amount="10"),
            make_invoice(currency="CZK", amount="100"),
            make_invoice(currency="EUR", amount="5"),
        ]

        analysis = InvoiceAggregator().analyze(records)

        assert analysis.currencies == ["EUR", "CZK"]
        assert list(analysis.currency_totals) == ["EUR", "CZK"]
        assert analysis.currency_totals["EUR"] == Decimal("15")

    def test_top_customers_capped_and_stable(self):
        """Test top-10 cap with ties kept in encounter order."""
        records = [make_invoice(customer=f"Customer {i:02d}", amount="100") for i in range(12)]
        records.append(make_invoice(customer="Big Spender", amount="500"))

        analysis = InvoiceAggregator().analyze(records)

        names = [c.name for c in analysis.top_customers]
        assert len(names) == 10
        assert names[0] == "Big Spender"
        assert names[1:] == [f"Customer {i:02d}" for i in range(9)]

    def test_customer_currency_is_last_seen(self):
        records = [
            make_invoice(customer="Mixed", currency="CZK", amount="100"),
            make_invoice(customer="Mixed", currency="EUR", amount="10"),
        ]

        analysis = InvoiceAggregator().analyze(records)

        customer = analysis.top_customers[0]
        assert customer.count == 2
        assert customer.total == Decimal("110")
        assert customer.currency == "EUR"

    def test_to_dict_formats_amounts(self):
        records = [
            make_invoice(customer="ABC", amount="25000"),
            make_invoice(customer="XYZ", amount="15000", state=InvoiceState.CANCELLED),
        ]

        data = InvoiceAggregator().analyze(records).to_dict()

        assert data["summary"] == {
            "total_count": 2,
            "active_count": 1,
            "cancelled_count": 1,
            "document_types_count": 1,
            "currencies": ["CZK"],
        }
        assert data["totals_by_currency"] == {"CZK": "25 000,00 CZK"}
        assert data["by_document_type"] == {
            "issuedInvoice": {"count": 1, "totals": {"CZK": "25 000,00 CZK"}}
        }
        assert data["by_status"] == {"active": 1, "cancelled": 1}
        assert data["top_customers"] == [
            {"name": "ABC", "count": 1, "total": "25 000,00 CZK"}
        ]


class TestOutcomingInvoicesModule:
    """Tests for OutcomingInvoicesModule.process()."""

    def test_fetches_period_range(self, fake_source, january):
        fake_source.invoices = [make_invoice(amount="100"), make_invoice(amount="50")]

        result = OutcomingInvoicesModule().process(fake_source, january)

        assert result.success is True
        assert fake_source.calls == [
            ("invoices", {"date_from": january.start, "date_to": january.end})
        ]
        assert result.records_processed == 2
        assert result.data["totals_by_currency"] == {"CZK": "150,00 CZK"}

    def test_fetch_failure_reported(self, fake_source, january):
        fake_source.fail_on = {"invoices"}

        result = OutcomingInvoicesModule().process(fake_source, january)

        assert result.success is False
        assert result.error == "invoices backend unavailable"
        assert result.data == {}
