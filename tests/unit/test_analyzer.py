"""
Unit Tests - Document Analyzer
==============================
Mock heuristic, Azure response mapping and analyzer selection.
"""

from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
from azure.core.exceptions import HttpResponseError

pytestmark = pytest.mark.unit


class TestMockDocumentAnalyzer:

    @pytest.mark.parametrize(
        "filename, expected_type",
        [
            ("invoice_123.pdf", "invoice"),
            ("1700000000000_INVOICE-march.pdf", "invoice"),
            ("store_receipt.png", "receipt"),
            ("cardiology_referral.tiff", "referral"),
            ("prescription refill.pdf", "prescription"),
            ("lab_results_2024.pdf", "lab_result"),
            ("insurance-claim.pdf", "insurance_claim"),
            ("signed_consent.pdf", "consent_form"),
        ],
    )
    def test_keyword_selects_document_type(self, filename, expected_type):
        from services.analyzer import MATCHED_CONFIDENCE, MockDocumentAnalyzer

        result = MockDocumentAnalyzer().classify(filename)

        assert result.document_type == expected_type
        assert result.confidence == MATCHED_CONFIDENCE

    def test_first_keyword_wins(self):
        from services.analyzer import MockDocumentAnalyzer

        result = MockDocumentAnalyzer().classify("receipt_for_invoice.pdf")
        assert result.document_type == "invoice"

    @pytest.mark.parametrize(
        "filename, expected_type",
        [
            ("invoices_march.pdf", "invoice"),
            ("myinvoice.pdf", "invoice"),
            ("receipts.pdf", "receipt"),
            ("referrals_q1.pdf", "referral"),
            ("LabResults.PDF", "lab_result"),
        ],
    )
    def test_keyword_matches_inside_longer_words(self, filename, expected_type):
        from services.analyzer import MockDocumentAnalyzer

        result = MockDocumentAnalyzer().classify(filename)
        assert result.document_type == expected_type

    def test_label_is_not_a_lab_result(self):
        from services.analyzer import MockDocumentAnalyzer

        result = MockDocumentAnalyzer().classify("shipping_label.pdf")
        assert result.document_type == "unknown"

    def test_unrecognized_name_uses_fallback(self):
        from services.analyzer import (
            FALLBACK_CONFIDENCE,
            FALLBACK_DOCUMENT_TYPE,
            MockDocumentAnalyzer,
        )

        result = MockDocumentAnalyzer().classify("scan_0001.pdf")

        assert result.document_type == FALLBACK_DOCUMENT_TYPE
        assert result.confidence == FALLBACK_CONFIDENCE
        assert [f.name for f in result.fields] == ["stored_filename"]
        assert result.fields[0].value == "scan_0001.pdf"

    def test_matched_fields(self):
        from services.analyzer import MockDocumentAnalyzer

        result = MockDocumentAnalyzer().classify("invoice_123.pdf")

        assert [(f.name, f.value) for f in result.fields] == [
            ("stored_filename", "invoice_123.pdf"),
            ("matched_keyword", "invoice"),
        ]

    @pytest.mark.asyncio
    async def test_analyze_uses_local_file_name(self, tmp_path):
        from services.analyzer import MockDocumentAnalyzer

        analyzer = MockDocumentAnalyzer()
        path = tmp_path / "1700000000000_invoice_123.pdf"

        first = await analyzer.analyze(str(path), path)
        second = await analyzer.analyze("https://example/blob", path)

        assert first == second
        assert first.document_type == "invoice"
        assert first.fields[0].name == "stored_filename"
        assert first.fields[0].value == "1700000000000_invoice_123.pdf"


def _field(content):
    return SimpleNamespace(content=content)


def _pair(key, value, confidence):
    return SimpleNamespace(
        key=SimpleNamespace(content=key) if key is not None else None,
        value=SimpleNamespace(content=value) if value is not None else None,
        confidence=confidence,
    )


class TestAzureResultMapping:

    def test_typed_document(self):
        from services.analyzer import AzureDocumentAnalyzer

        result = SimpleNamespace(
            documents=[
                SimpleNamespace(
                    doc_type="invoice",
                    confidence=0.97,
                    fields={
                        "VendorName": _field("Contoso Medical"),
                        "InvoiceTotal": _field("$120.00"),
                        "DueDate": None,
                    },
                )
            ],
            key_value_pairs=None,
        )

        analysis = AzureDocumentAnalyzer.map_result(result)

        assert analysis.document_type == "invoice"
        assert analysis.confidence == 0.97
        assert [(f.name, f.value) for f in analysis.fields] == [
            ("VendorName", "Contoso Medical"),
            ("InvoiceTotal", "$120.00"),
            ("DueDate", None),
        ]

    def test_layout_key_value_pairs(self):
        from services.analyzer import AzureDocumentAnalyzer

        result = SimpleNamespace(
            documents=None,
            key_value_pairs=[
                _pair("Patient Name:", "Jane Doe", 0.9),
                _pair("DOB", "01/02/1980", 0.7),
                _pair("Signature", None, None),
                _pair(":", "orphan", 0.1),
                _pair(None, "no key", 0.2),
            ],
        )

        analysis = AzureDocumentAnalyzer.map_result(result)

        assert analysis.document_type == "document"
        assert analysis.confidence == pytest.approx(0.8)
        assert [(f.name, f.value) for f in analysis.fields] == [
            ("Patient Name", "Jane Doe"),
            ("DOB", "01/02/1980"),
            ("Signature", None),
        ]

    def test_empty_result(self):
        from services.analyzer import AzureDocumentAnalyzer

        analysis = AzureDocumentAnalyzer.map_result(
            SimpleNamespace(documents=[], key_value_pairs=[])
        )

        assert analysis.document_type == "document"
        assert analysis.confidence is None
        assert analysis.fields == []


class TestAzureDocumentAnalyzer:

    @pytest.mark.asyncio
    async def test_submits_file_bytes_to_configured_model(self, tmp_path):
        from services.analyzer import AzureDocumentAnalyzer

        path = tmp_path / "fax.pdf"
        path.write_bytes(b"%PDF-1.4 fax")
        submitted = {}

        def begin_analyze_document(model_id, body, features=None):
            submitted["model_id"] = model_id
            submitted["body"] = body.read()
            submitted["features"] = features
            poller = MagicMock()
            poller.result.return_value = SimpleNamespace(
                documents=None,
                key_value_pairs=[_pair("Fax Number", "555-0100", 0.95)],
            )
            return poller

        client = MagicMock()
        client.begin_analyze_document.side_effect = begin_analyze_document
        analyzer = AzureDocumentAnalyzer("", "", client=client)

        analysis = await analyzer.analyze("https://blob/fax.pdf", path)

        assert submitted["model_id"] == "prebuilt-layout"
        assert submitted["body"] == b"%PDF-1.4 fax"
        assert len(submitted["features"]) == 1
        assert analysis.fields[0].name == "Fax Number"
        assert analysis.confidence == 0.95

    @pytest.mark.asyncio
    async def test_typed_model_requests_no_add_on_features(self, tmp_path):
        from services.analyzer import AzureDocumentAnalyzer

        path = tmp_path / "invoice.pdf"
        path.write_bytes(b"pdf")
        client = MagicMock()
        client.begin_analyze_document.return_value.result.return_value = SimpleNamespace(
            documents=[SimpleNamespace(doc_type="invoice", confidence=0.9, fields={})],
            key_value_pairs=None,
        )
        analyzer = AzureDocumentAnalyzer("", "", model_id="prebuilt-invoice", client=client)

        analysis = await analyzer.analyze(str(path), path)

        args, kwargs = client.begin_analyze_document.call_args
        assert args[0] == "prebuilt-invoice"
        assert kwargs["features"] is None
        assert analysis.document_type == "invoice"

    @pytest.mark.asyncio
    async def test_service_error_raises_analysis_error(self, tmp_path):
        from exceptions import AnalysisError
        from services.analyzer import AzureDocumentAnalyzer

        path = tmp_path / "fax.pdf"
        path.write_bytes(b"pdf")
        client = MagicMock()
        client.begin_analyze_document.side_effect = HttpResponseError(message="401 Unauthorized")
        analyzer = AzureDocumentAnalyzer("", "", client=client)

        with pytest.raises(AnalysisError) as exc_info:
            await analyzer.analyze("loc", path)

        assert exc_info.value.context["model_id"] == "prebuilt-layout"

    @pytest.mark.asyncio
    async def test_missing_file_raises_analysis_error(self, tmp_path):
        from exceptions import AnalysisError
        from services.analyzer import AzureDocumentAnalyzer

        analyzer = AzureDocumentAnalyzer("", "", client=MagicMock())

        with pytest.raises(AnalysisError):
            await analyzer.analyze("loc", tmp_path / "missing.pdf")

    def test_requires_endpoint_and_key_without_client(self):
        from exceptions import ConfigurationError
        from services.analyzer import AzureDocumentAnalyzer

        with pytest.raises(ConfigurationError):
            AzureDocumentAnalyzer(endpoint="https://x.cognitiveservices.azure.com", key="")


class TestCreateAnalyzer:

    def test_mock_without_configuration(self, test_settings):
        from services.analyzer import MockDocumentAnalyzer, create_analyzer

        assert isinstance(create_analyzer(test_settings), MockDocumentAnalyzer)

    def test_mock_when_only_endpoint_is_set(self, test_settings):
        from services.analyzer import MockDocumentAnalyzer, create_analyzer

        settings = test_settings.model_copy(
            update={"form_recognizer_endpoint": "https://x.cognitiveservices.azure.com/"}
        )
        assert isinstance(create_analyzer(settings), MockDocumentAnalyzer)

    def test_azure_when_endpoint_and_key_are_set(self, test_settings):
        from services.analyzer import AzureDocumentAnalyzer, create_analyzer

        settings = test_settings.model_copy(update={
            "form_recognizer_endpoint": "https://x.cognitiveservices.azure.com/",
            "form_recognizer_key": "0123456789abcdef",
            "analysis_model_id": "prebuilt-invoice",
        })
        analyzer = create_analyzer(settings)

        assert isinstance(analyzer, AzureDocumentAnalyzer)
        assert analyzer.model_id == "prebuilt-invoice"
