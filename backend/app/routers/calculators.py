from fastapi import APIRouter
from typing import Optional

from .. import calculators

router = APIRouter(prefix="/calculators", tags=["calculators"])


# Inputs stay strings so a half-filled form yields {"result": null} rather than a 422.

@router.get("/discount")
def discount(price: Optional[str] = None, percent: Optional[str] = None):
    return {"result": calculators.discount(price, percent)}


@router.get("/gross-margin")
def gross_margin(cost: Optional[str] = None, selling: Optional[str] = None):
    return {"result": calculators.gross_margin(cost, selling)}


@router.get("/markup")
def markup(cost: Optional[str] = None, percent: Optional[str] = None):
    return {"result": calculators.markup(cost, percent)}


@router.get("/break-even")
def break_even(fixed_costs: Optional[str] = None, variable_cost: Optional[str] = None, selling_price: Optional[str] = None):
    return {"result": calculators.break_even(fixed_costs, variable_cost, selling_price)}


@router.get("/margin")
def margin(cost: Optional[str] = None, margin_percent: Optional[str] = None):
    return {"result": calculators.price_for_margin(cost, margin_percent)}
