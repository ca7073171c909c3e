from __future__ import annotations

from typing import Any, Dict, Optional
from pydantic import BaseModel, Field


class ZipCodeRecord(BaseModel):
    """One row of KEN_ALL.CSV."""

    jis_code: str = Field(description="Local government code (JIS X0401, X0402)")
    old_zip_code: str = Field(description="Legacy 5-digit zip code")
    zip_code: str = Field(description="7-digit zip code")
    pref_kana: str = Field(description="Prefecture name, halfwidth kana")
    city_kana: str = Field(description="City name, halfwidth kana")
    street_kana: str = Field(description="Street (town area) name, halfwidth kana")
    pref: str = Field(description="Prefecture name, kanji")
    city: str = Field(description="City name, kanji")
    street: str = Field(description="Street (town area) name, kanji")
    street_duplicate_zip_code_flg: str = Field(description="1 if one area spans several zip codes")
    numbered_small_street_flg: str = Field(description="1 if lots are numbered per small sub-area (koaza)")
    numbered_street_flg: str = Field(description="1 if the area has chome numbers")
    zip_code_duplicate_street_flg: str = Field(description="1 if one zip code covers several areas")
    update_flg: str = Field(description="0 unchanged, 1 changed, 2 abolished")
    update_reason: str = Field(description="Reason code for the update, 0-6")
    pref_code: str = Field(description="Prefecture code (JIS X0401); not a KEN_ALL column")


class NormalizedCsv(BaseModel):
    sha256: str
    encoding: str = Field(default="utf-8")
    content_b64: str


class ReportSummary(BaseModel):
    rows_read: int = 0
    rows_written: int = 0
    continuations_joined: int = 0
    deterministic: bool = True


class NormalizationReport(BaseModel):
    summary: ReportSummary
    normalizations: Dict[str, Any] = Field(default_factory=dict)


class NormalizeResponse(BaseModel):
    normalized_csv: NormalizedCsv
    report: NormalizationReport


class HealthResponse(BaseModel):
    ok: bool = True


class ErrorDetail(BaseModel):
    issue: str
    row: Optional[int] = None
    message: str
