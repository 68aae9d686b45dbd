from typing import Any, Dict, Optional, Union

from labreport.commons import pdf_text
from labreport.commons.report_normalizer import ReportNormalizer
from labreport.commons.settings import load_settings
from labreport.parsers.models import PDF_TEXT, ExtractedText, ParsedReport, ParseFailure, ProviderTag


class ReportEngine:
    """Engine facade that loads config and exposes extract/normalize/payload methods.
    Acepta una ruta al YAML, un dict ya cargado o Settings.
    """

    def __init__(self, config_path_or_obj: Any = None):
        self.settings = load_settings(config_path_or_obj)
        parsers_cfg = self.settings.parsers
        self.normalizer = ReportNormalizer(
            autodetect=parsers_cfg.autodetect, override=parsers_cfg.override
        )
        self.preview_bytes = self.settings.extraction.preview_bytes

    def extract(self, data: bytes) -> ExtractedText:
        return pdf_text.extract(data, preview_bytes=self.preview_bytes)

    def select_provider(self, text: str) -> ProviderTag:
        return self.normalizer.select_provider(text)

    def normalize(
        self, text: str, extraction_method: str = PDF_TEXT, provider: Optional[ProviderTag] = None
    ) -> ParsedReport:
        return self.normalizer.normalize(text, extraction_method, provider)

    def payload_for(self, result: Union[ParsedReport, ParseFailure]) -> Dict:
        return self.normalizer.payload_for(result)
