"""
schemas/sales.py
-----------------

Models for the sales pipeline: the records returned by the ERP sales
API, the date window used to query it, the three report kinds and the
aggregate handed to the message formatter.

Wire names of the sales API are Portuguese (``empresaOrigem``,
``valorProdutos``...). The models keep those as aliases so records can
be validated straight from the API payload and dumped back in the same
shape, while the Python side uses descriptive attribute names.
"""

from __future__ import annotations

from decimal import Decimal
from enum import Enum
from typing import Annotated, Dict, List, Optional, Set

from pydantic import (
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    PlainSerializer,
    field_validator,
    model_validator,
)


def _zero_if_none(value):
    return Decimal(0) if value is None else value


# Amounts stay Decimal in Python and become JSON numbers on the way out.
Amount = Annotated[
    Decimal,
    BeforeValidator(_zero_if_none),
    PlainSerializer(float, return_type=float, when_used="json"),
]


class OriginCompany(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True, extra="ignore")

    code: int = Field(alias="codigo")
    name: str = Field("", alias="nome")
    tax_id: str = Field("", alias="cnpj")

    @field_validator("name", "tax_id", mode="before")
    @classmethod
    def _empty_if_none(cls, value):
        return "" if value is None else value


class ProductLine(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True, extra="ignore")

    type: Optional[str] = Field(None, alias="tipo")
    net_value: Amount = Field(Decimal(0), alias="valorLiquido")


class SaleRecord(BaseModel):
    """One sales note as returned by the sales API.

    ``record_date`` is when the note was issued; ``sale_date`` is the
    actual sale and is the one used for windows and report buckets.
    ``products_value`` is not guaranteed to equal the sum of the product
    lines: daily and monthly reports use the former, the by-type report
    uses the latter.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True, extra="ignore")

    origin_company: OriginCompany = Field(alias="empresaOrigem")
    products_value: Amount = Field(Decimal(0), alias="valorProdutos")
    freight_value: Amount = Field(Decimal(0), alias="valorFrete")
    record_date: str = Field("", alias="data")
    sale_date: str = Field("", alias="dataVenda")
    products: List[ProductLine] = Field(default_factory=list, alias="produtos")

    @field_validator("record_date", "sale_date", mode="before")
    @classmethod
    def _empty_date(cls, value):
        return "" if value is None else value

    @field_validator("products", mode="before")
    @classmethod
    def _empty_products(cls, value):
        return [] if value is None else value


class SalesPage(BaseModel):
    """One page of the sales API response. Records are validated one by one later."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    content: List[dict] = Field(default_factory=list)
    last_page: bool = Field(False, alias="lastPage")
    total: Optional[int] = None

    @field_validator("content", mode="before")
    @classmethod
    def _empty_content(cls, value):
        return [] if value is None else value


class DateWindow(BaseModel):
    """Inclusive ``[start, end]`` range of compact ``YYYYMMDD`` dates."""

    model_config = ConfigDict(frozen=True)

    start: str
    end: str

    @field_validator("start", "end")
    @classmethod
    def _compact(cls, value: str) -> str:
        if len(value) != 8 or not value.isdigit():
            raise ValueError("data deve estar no formato YYYYMMDD")
        return value

    @model_validator(mode="after")
    def _ordered(self) -> "DateWindow":
        if self.start > self.end:
            raise ValueError("dataInicial deve ser menor ou igual a dataFinal")
        return self


class ReportKind(str, Enum):
    DAILY_SALES = "daily_sales"
    MONTHLY_SALES = "monthly_sales"
    SALES_BY_TYPE = "sales_by_type"


class AggregateResult(BaseModel):
    """Totals per store label and bucket, plus the flat grand total."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    kind: ReportKind = Field(alias="type")
    data: Dict[str, Dict[str, Amount]] = Field(default_factory=dict)
    total: Amount = Decimal(0)


def parse_store_codes(values) -> Optional[Set[int]]:
    """Parse store codes given as ints or numeric strings; empty means no filter."""
    if not values:
        return None
    codes = {int(str(v).strip()) for v in values if str(v).strip()}
    return codes or None


class FetchSalesRequest(BaseModel):
    """Body of ``POST /fetch-sales-data``. Missing dates default to today."""

    model_config = ConfigDict(populate_by_name=True)

    data_inicial: Optional[str] = Field(None, alias="dataInicial")
    data_final: Optional[str] = Field(None, alias="dataFinal")
    empresas_origem: Optional[List[str]] = Field(None, alias="empresasOrigem")

    @field_validator("empresas_origem", mode="before")
    @classmethod
    def _codes_as_strings(cls, value):
        if value is None:
            return None
        return [str(v) for v in value]

    @field_validator("empresas_origem")
    @classmethod
    def _numeric_codes(cls, value):
        if value:
            for code in value:
                if code.strip() and not code.strip().isdigit():
                    raise ValueError(f"código de loja inválido: {code}")
        return value


class ProcessInsightsRequest(FetchSalesRequest):
    """Body of ``POST /process-insights``."""

    data_inicial: str = Field(alias="dataInicial")
    data_final: str = Field(alias="dataFinal")
    report_type: ReportKind = Field(alias="reportType")
