from typing import List

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from fxcache.models import Selection, lookup
from fxcache.routers.rates import get_service
from fxcache.services.rates.refresh import RateRefreshService

router = APIRouter(prefix="/selection", tags=["selection"])


class SelectionIn(BaseModel):
    codes: List[str] = Field(..., min_length=1, description="Codes of interest, in display order")
    base: str = Field("", description="Code amounts are entered in; defaults to the first code")


class SelectionOut(BaseModel):
    codes: List[str]
    base: str

    @classmethod
    def from_selection(cls, selection: Selection) -> "SelectionOut":
        return cls(codes=selection.codes, base=selection.base)


@router.get("/", response_model=SelectionOut, summary="Current selection")
async def get_selection(svc: RateRefreshService = Depends(get_service)):
    return SelectionOut.from_selection(svc.selection)


@router.put("/", response_model=SelectionOut, summary="Replace selection")
async def put_selection(payload: SelectionIn, svc: RateRefreshService = Depends(get_service)):
    unknown = [c for c in payload.codes if lookup(c) is None]
    if unknown:
        raise HTTPException(status_code=400, detail=f"unknown currency codes: {', '.join(unknown)}")
    selection = Selection(codes=payload.codes, base=payload.base)
    svc.store.set_selection(selection)
    svc.update_selection(selection)
    return SelectionOut.from_selection(selection)
