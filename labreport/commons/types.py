from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ParseRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    document_ref: str = Field(alias="documentRef")
    storage_bucket: str = Field(default="lab-results", alias="storageBucket")
    correlation_id: Optional[str] = Field(default=None, alias="correlationId")

    @field_validator("document_ref")
    @classmethod
    def _not_blank(cls, v: str):
        if not v or not v.strip():
            raise ValueError("documentRef es obligatorio")
        return v.strip()


class ParsersCfg(BaseModel):
    autodetect: bool = True
    override: Literal["", "quest", "labcorp", "generic"] = ""


class StorageCfg(BaseModel):
    type: Literal["file", "memory"] = "file"
    default_bucket: str = "lab-results"


class ExtractionCfg(BaseModel):
    preview_bytes: int = Field(default=64, ge=0)


class Settings(BaseModel):
    app: Dict[str, Any] = {}
    paths: Dict[str, str]
    storage: StorageCfg = StorageCfg()
    parsers: ParsersCfg = ParsersCfg()
    extraction: ExtractionCfg = ExtractionCfg()
    logging: Dict[str, Any] = {}
