"""Keyword search contracts."""

from typing import List

from cemetery.schemas.common import CamelModel
from cemetery.schemas.grave import GraveResponse
from cemetery.schemas.request import RequestRow


class GraveSearchResponse(CamelModel):
    results: List[GraveResponse]
    total: int
    has_more: bool


class RequestSearchResponse(CamelModel):
    results: List[RequestRow]
    total: int
    has_more: bool


class GraveBucket(CamelModel):
    results: List[GraveResponse]
    total: int


class RequestBucket(CamelModel):
    results: List[RequestRow]
    total: int


class SearchAllResponse(CamelModel):
    graves: GraveBucket
    requests: RequestBucket
    total: int
