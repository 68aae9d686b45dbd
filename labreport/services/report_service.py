# labreport/services/report_service.py
import asyncio
import os
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from pydantic import ValidationError

from labreport.commons.errors import ExtractionError, FetchError, LabReportError
from labreport.commons.logger import logger, setup_logging
from labreport.commons.report_engine import ReportEngine
from labreport.commons.types import ParseRequest
from labreport.helpers.blob_store import BlobStore, FileBlobStore, MemoryBlobStore
from labreport.parsers.models import ParsedReport, ParseFailure
from labreport.validation.validators import validate_payload_or_raise

ParseResult = Union[ParsedReport, ParseFailure]
RequestLike = Union[ParseRequest, Mapping[str, Any], str]

EMPTY_TEXT_MESSAGE = "No text could be extracted from PDF. File may be scanned or corrupted."


class ReportService:
    def __init__(self, engine: ReportEngine, store: BlobStore, default_bucket: Optional[str] = None):
        self.engine = engine
        self.store = store
        self.default_bucket = default_bucket or engine.settings.storage.default_bucket

    def _request(self, request: RequestLike) -> ParseRequest:
        if isinstance(request, ParseRequest):
            return request
        if isinstance(request, str):
            request = {"documentRef": request}
        data = dict(request)
        if "storageBucket" not in data and "storage_bucket" not in data:
            data["storageBucket"] = self.default_bucket
        return ParseRequest.model_validate(data)

    def _fetch(self, req: ParseRequest) -> bytes:
        try:
            return self.store.download(req.storage_bucket, req.document_ref)
        except Exception as ex:
            message = getattr(ex, "message", None) or str(ex)
            raise FetchError(f"Failed to download file: {message}") from ex

    def parse(self, request: RequestLike) -> ParseResult:
        """bytes -> text -> provider -> report. Never raises; failures come back as ParseFailure."""
        try:
            req = self._request(request)
        except (ValidationError, TypeError, ValueError) as ve:
            logger.error(f"Solicitud inválida: {ve}")
            return ParseFailure(error="Invalid parse request", details=str(ve))

        log = logger.bind(correlation_id=req.correlation_id or "-")
        log.info(f"Procesando {req.storage_bucket}/{req.document_ref}")
        try:
            # 1) descarga
            data = self._fetch(req)
            log.info(f"Descargado: {len(data)} bytes")

            # 2) texto
            extracted = self.engine.extract(data)
            if not extracted.text.strip():
                raise ExtractionError(
                    EMPTY_TEXT_MESSAGE,
                    size=len(data),
                    preview=data[: self.engine.preview_bytes],
                )
            log.info(f"Texto extraído: {len(extracted.text)} caracteres ({extracted.method})")

            # 3) proveedor + parser
            provider = self.engine.select_provider(extracted.text)
            log.info(f"Proveedor detectado: {provider.value}")
            report = self.engine.normalize(extracted.text, extracted.method, provider)

        except LabReportError as ex:
            log.error(f"{type(ex).__name__}: {ex.message}")
            return ParseFailure(error=ex.message, details=ex.details)
        except Exception as ex:
            log.exception(f"Error inesperado procesando {req.document_ref}: {ex}")
            return ParseFailure(error=f"Unexpected parser error: {ex}", details=type(ex).__name__)

        meta = report.metadata
        log.info(
            f"Parseo completo: provider={report.provider.name} markers={meta.total_markers} "
            f"sections={len(report.sections)} confidence={meta.confidence}"
        )
        for w in meta.warnings:
            log.warning(w)
        return report

    def parse_payload(self, request: RequestLike) -> Dict:
        """Same as parse() but returns the JSON-ready response dict."""
        payload = self.engine.payload_for(self.parse(request))
        validate_payload_or_raise(payload)
        return payload

    async def aparse(self, request: RequestLike) -> ParseResult:
        return await asyncio.to_thread(self.parse, request)

    async def aparse_many(self, requests: Iterable[RequestLike]) -> List[ParseResult]:
        # llamadas independientes; sin estado compartido entre ellas
        return list(await asyncio.gather(*(self.aparse(r) for r in requests)))


def build_service(
    cfg: Any = None, store: Optional[BlobStore] = None, configure_logging: bool = False
) -> ReportService:
    engine = ReportEngine(cfg)
    if configure_logging:
        level = os.getenv("LOG_LEVEL", engine.settings.logging.get("level", "INFO"))
        setup_logging(engine.settings.paths.get("logs_root"), level)
        logger.info("Servicio de parseo de reportes listo")
    if store is None:
        if engine.settings.storage.type == "memory":
            store = MemoryBlobStore()
        else:
            store = FileBlobStore(engine.settings.paths.get("storage_root", "storage"))
    return ReportService(engine, store)
