# iam/shared/utils/pagination.py

from typing import Type
from fastapi import Query
from fastapi_pagination import Page, Params
from fastapi_pagination.bases import AbstractPage
from pydantic import BaseModel

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100


def pagination_params(
        page: int = Query(1, ge=1, description="Page number"),
        size: int = Query(
            DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE, description="Items per page"
        ),
) -> Params:
    return Params(page=page, size=size)


def page_of(page: AbstractPage, schema: Type[BaseModel]) -> Page:
    """Re-type a page of ORM rows as a page of ``schema`` items."""
    return Page[schema].model_validate(page, from_attributes=True)
