"""
Document Analyzer
=================
Derives a document type, a confidence score and extracted fields from a
stored file.

Two strategies share one contract:
- AzureDocumentAnalyzer: Azure AI Document Intelligence
- MockDocumentAnalyzer: keyword heuristic on the file name
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from statistics import mean
from typing import List, Optional, Tuple, Union

from azure.ai.documentintelligence import DocumentIntelligenceClient
from azure.ai.documentintelligence.models import AnalyzeResult, DocumentAnalysisFeature
from azure.core.credentials import AzureKeyCredential
from azure.core.exceptions import AzureError

from config import Settings
from exceptions import AnalysisError, ConfigurationError
from schemas import AnalysisResult, ExtractedField

logger = logging.getLogger(__name__)


class BaseDocumentAnalyzer(ABC):
    """Abstract base class for document analyzers."""

    name: str = "base"

    @abstractmethod
    async def analyze(self, location: str, local_path: Union[str, Path]) -> AnalysisResult:
        """
        Analyze one stored file.

        Args:
            location: Recorded blob URL or local path of the file
            local_path: Path of the file on local disk

        Returns:
            AnalysisResult with document type, confidence and fields
        """


# =============================================================================
# Mock Analyzer
# =============================================================================

# Checked in order; the first keyword contained in the lowercased file name wins
KEYWORD_DOCUMENT_TYPES: List[Tuple[str, str]] = [
    ("invoice", "invoice"),
    ("receipt", "receipt"),
    ("referral", "referral"),
    ("prescription", "prescription"),
    ("lab_result", "lab_result"),
    ("labresult", "lab_result"),
    ("insurance", "insurance_claim"),
    ("consent", "consent_form"),
]

MATCHED_CONFIDENCE = 0.85
FALLBACK_DOCUMENT_TYPE = "unknown"
FALLBACK_CONFIDENCE = 0.5


class MockDocumentAnalyzer(BaseDocumentAnalyzer):
    """
    Filename heuristic used when no analysis service is configured.

    Deterministic and free of I/O: the same file name always yields the
    same result. ``analyze`` sees only the stored, timestamp-prefixed name,
    which is what the ``stored_filename`` field reports.
    """

    name = "mock"

    def classify(self, filename: str) -> AnalysisResult:
        lowered = filename.lower()
        for keyword, doc_type in KEYWORD_DOCUMENT_TYPES:
            if keyword in lowered:
                return AnalysisResult(
                    document_type=doc_type,
                    confidence=MATCHED_CONFIDENCE,
                    fields=[
                        ExtractedField(name="stored_filename", value=filename),
                        ExtractedField(name="matched_keyword", value=keyword),
                    ],
                )

        return AnalysisResult(
            document_type=FALLBACK_DOCUMENT_TYPE,
            confidence=FALLBACK_CONFIDENCE,
            fields=[ExtractedField(name="stored_filename", value=filename)],
        )

    async def analyze(self, location: str, local_path: Union[str, Path]) -> AnalysisResult:
        result = self.classify(Path(local_path).name)
        logger.info(
            f"Mock analysis: file={Path(local_path).name}, "
            f"document_type={result.document_type}"
        )
        return result


# =============================================================================
# Azure Document Intelligence Analyzer
# =============================================================================

class AzureDocumentAnalyzer(BaseDocumentAnalyzer):
    """
    Analyzer backed by Azure AI Document Intelligence.

    Typed models (e.g. ``prebuilt-invoice``) report a document type and
    named fields. The layout model reports neither, so key/value pairs are
    requested and used as the fields instead.
    """

    name = "azure"

    def __init__(
        self,
        endpoint: str,
        key: str,
        model_id: str = "prebuilt-layout",
        client: Optional[DocumentIntelligenceClient] = None,
    ):
        """
        Args:
            endpoint: Document Intelligence resource endpoint
            key: Resource API key
            model_id: Model used for every analysis
            client: Preconfigured client (tests)
        """
        if client is None and (not endpoint or not key):
            raise ConfigurationError(
                "Azure Document Intelligence requires an endpoint and a key",
                setting="FORM_RECOGNIZER_ENDPOINT/FORM_RECOGNIZER_KEY",
            )
        self.model_id = model_id
        self.client = client or DocumentIntelligenceClient(
            endpoint=endpoint,
            credential=AzureKeyCredential(key)
        )

    def _analyze_file(self, local_path: Path) -> AnalyzeResult:
        features = None
        if self.model_id == "prebuilt-layout":
            features = [DocumentAnalysisFeature.KEY_VALUE_PAIRS]

        with open(local_path, "rb") as f:
            poller = self.client.begin_analyze_document(
                self.model_id,
                f,
                features=features,
            )
            return poller.result()

    async def analyze(self, location: str, local_path: Union[str, Path]) -> AnalysisResult:
        """
        Submit the file to Document Intelligence and map the response.

        Raises:
            AnalysisError: If the service call or file read fails.
        """
        loop = asyncio.get_event_loop()
        try:
            result = await loop.run_in_executor(
                None,
                lambda: self._analyze_file(Path(local_path))
            )
        except (AzureError, OSError) as e:
            raise AnalysisError(
                "Document Intelligence analysis failed",
                model_id=self.model_id,
                location=location,
                original_error=e,
            ) from e

        analysis = self.map_result(result)
        logger.info(
            f"Azure analysis: model={self.model_id}, "
            f"document_type={analysis.document_type}, fields={len(analysis.fields)}"
        )
        return analysis

    @staticmethod
    def map_result(result: AnalyzeResult) -> AnalysisResult:
        """Map a Document Intelligence response onto an AnalysisResult."""
        if result.documents:
            document = result.documents[0]
            fields = [
                ExtractedField(name=name, value=field.content if field is not None else None)
                for name, field in (document.fields or {}).items()
            ]
            return AnalysisResult(
                document_type=document.doc_type,
                confidence=document.confidence,
                fields=fields,
            )

        fields = []
        confidences = []
        for pair in result.key_value_pairs or []:
            name = (pair.key.content or "").strip().rstrip(":").strip() if pair.key else ""
            if not name:
                continue
            fields.append(ExtractedField(
                name=name,
                value=pair.value.content if pair.value is not None else None,
            ))
            if pair.confidence is not None:
                confidences.append(pair.confidence)

        return AnalysisResult(
            document_type="document",
            confidence=round(mean(confidences), 4) if confidences else None,
            fields=fields,
        )


def create_analyzer(settings: Settings) -> BaseDocumentAnalyzer:
    """Create the analyzer selected by configuration presence."""
    if settings.cloud_analysis_enabled:
        return AzureDocumentAnalyzer(
            endpoint=settings.form_recognizer_endpoint,
            key=settings.form_recognizer_key,
            model_id=settings.analysis_model_id,
        )
    return MockDocumentAnalyzer()
