from decimal import Decimal
from functools import lru_cache
from typing import Dict, List, Optional, Union
import logging

from fastapi import Depends, FastAPI, HTTPException, Query, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse, Response
from pydantic import BaseModel, Field, field_validator

from warasat.config import settings
from warasat.services.ai.valuation import ValuationService
from warasat.services.estate.models import (
    EstateProperty,
    Location,
    Party,
    PropertyType,
    Relation,
    ValuationSource,
)
from warasat.services.estate.parsing import parse_amount, parse_latitude, parse_longitude
from warasat.services.estate.session import (
    EstateSession,
    EstateValidationError,
    UnknownPartyError,
    UnknownPropertyError,
)
from warasat.services.i18n.localization import resolve_language
from warasat.services.market.history import HISTORICAL_DATA, INSIGHT, growth_multiple
from warasat.services.report.pdf import build_estate_report_pdf
from warasat.services.report.render import render_estate_report

logger = logging.getLogger(__name__)

app = FastAPI(title="Warasat", version="0.1.0")

# Sessions live in memory only; a restart starts from scratch.
_sessions: Dict[str, EstateSession] = {}


class EstateCreate(BaseModel):
    deceased_name: str = ""


class PartyCreate(BaseModel):
    name: str = Field(min_length=1, max_length=120)
    relation: Relation

    @field_validator("relation", mode="before")
    @classmethod
    def _normalize_relation(cls, value):
        return value.strip().lower() if isinstance(value, str) else value


class PartyOut(BaseModel):
    id: str
    name: str
    relation: Relation
    share: str
    percentage: float


class LocationOut(BaseModel):
    lat: float
    lng: float
    address: Optional[str] = None


class PropertyCreate(BaseModel):
    name: str = Field(min_length=1, max_length=120)
    type: PropertyType = PropertyType.RESIDENTIAL
    # Raw user input; unparsable values become zero.
    area_sq_ft: Union[str, float, None] = None
    rate: Union[str, float, None] = None
    latitude: Union[str, float, None] = None
    longitude: Union[str, float, None] = None
    address: Optional[str] = None
    description: Optional[str] = None
    estimate: bool = False

    @field_validator("type", mode="before")
    @classmethod
    def _normalize_type(cls, value):
        return value.strip().lower() if isinstance(value, str) else value


class PropertyOut(BaseModel):
    id: str
    name: str
    type: PropertyType
    area_sq_ft: Decimal
    area_sq_yards: Decimal
    location: LocationOut
    valuation_source: ValuationSource
    price_per_sq_ft: Decimal
    total_value: Decimal
    original_value: Decimal
    drift_percentage: Decimal
    assigned_to: Optional[str] = None
    description: Optional[str] = None
    analysis: str = ""


class AssignmentUpdate(BaseModel):
    party_id: Optional[str] = None


class ValueUpdate(BaseModel):
    total_value: Decimal = Field(ge=0)


class FinancialsOut(BaseModel):
    id: str
    name: str
    target_value: Decimal
    assigned_value: Decimal
    balance: Decimal


class TransactionOut(BaseModel):
    from_id: str
    from_name: str
    to_id: str
    to_name: str
    amount: Decimal


class AllocationOut(BaseModel):
    allocated_percentage: float
    unallocated_percentage: float
    is_complete: bool


class EstateOut(BaseModel):
    id: str
    deceased_name: str
    currency: str
    total_estate_value: Decimal
    parties: List[PartyOut]
    properties: List[PropertyOut]
    allocation: AllocationOut
    financials: List[FinancialsOut]
    settlements: List[TransactionOut]


class AdviceOut(BaseModel):
    property_id: str
    party_id: str
    advice: str


class ExplanationOut(BaseModel):
    explanation: str


class HistoryPointOut(BaseModel):
    year: int
    gold_rate: int
    property_index: int


class HistoryOut(BaseModel):
    points: List[HistoryPointOut]
    gold_growth: Optional[float]
    property_growth: Optional[float]
    insight: str


@lru_cache(maxsize=1)
def get_valuation_service() -> ValuationService:
    return ValuationService(settings)


def _party_out(party: Party) -> PartyOut:
    return PartyOut(
        id=party.id,
        name=party.name,
        relation=party.relation,
        share=f"{party.share.numerator}/{party.share.denominator}",
        percentage=party.percentage,
    )


def _property_out(item: EstateProperty) -> PropertyOut:
    return PropertyOut(
        id=item.id,
        name=item.name,
        type=item.type,
        area_sq_ft=item.area_sq_ft,
        area_sq_yards=item.area_sq_yards,
        location=LocationOut(lat=item.location.lat, lng=item.location.lng, address=item.location.address),
        valuation_source=item.valuation_source,
        price_per_sq_ft=item.price_per_sq_ft,
        total_value=item.total_value,
        original_value=item.original_value,
        drift_percentage=item.drift_percentage,
        assigned_to=item.assigned_to,
        description=item.description,
        analysis=item.analysis,
    )


def _transactions_out(session: EstateSession) -> List[TransactionOut]:
    return [
        TransactionOut(
            from_id=tx.from_id,
            from_name=tx.from_name,
            to_id=tx.to_id,
            to_name=tx.to_name,
            amount=tx.amount,
        )
        for tx in session.settlements()
    ]


def _estate_out(session: EstateSession) -> EstateOut:
    allocation = session.allocation
    return EstateOut(
        id=session.id,
        deceased_name=session.deceased_name,
        currency=settings.currency,
        total_estate_value=session.total_estate_value,
        parties=[_party_out(party) for party in session.parties],
        properties=[_property_out(item) for item in session.properties],
        allocation=AllocationOut(
            allocated_percentage=float(allocation.allocated * 100),
            unallocated_percentage=float(allocation.unallocated * 100),
            is_complete=allocation.is_complete,
        ),
        financials=[
            FinancialsOut(
                id=row.id,
                name=row.name,
                target_value=row.target_value,
                assigned_value=row.assigned_value,
                balance=row.balance,
            )
            for row in session.financials()
        ],
        settlements=_transactions_out(session),
    )


def _get_session(estate_id: str) -> EstateSession:
    session = _sessions.get(estate_id)
    if session is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Estate not found")
    return session


def _not_found(exc: Union[UnknownPartyError, UnknownPropertyError]) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))


def _invalid(exc: EstateValidationError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc))


@app.on_event("startup")
def on_startup() -> None:
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    if not settings.ai_api_key:
        logger.warning("WARASAT_AI_API_KEY is not configured. Valuations fall back to mock rates.")


@app.on_event("shutdown")
async def on_shutdown() -> None:
    await get_valuation_service().aclose()


cors_origins = list(settings.cors_origins or [])
allow_all_origins = "*" in cors_origins
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if allow_all_origins else cors_origins,
    allow_credentials=not allow_all_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health")
async def health() -> dict:
    return {"status": "ok"}


@app.post("/estates", response_model=EstateOut, status_code=status.HTTP_201_CREATED)
async def create_estate(payload: EstateCreate) -> EstateOut:
    session = EstateSession(
        payload.deceased_name,
        settlement_threshold=settings.settlement_threshold,
        default_location=Location(lat=settings.default_latitude, lng=settings.default_longitude),
    )
    _sessions[session.id] = session
    logger.info("Estate %s created", session.id)
    return _estate_out(session)


@app.get("/estates/{estate_id}", response_model=EstateOut)
async def get_estate(estate_id: str) -> EstateOut:
    return _estate_out(_get_session(estate_id))


@app.delete("/estates/{estate_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_estate(estate_id: str) -> Response:
    _get_session(estate_id)
    _sessions.pop(estate_id, None)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@app.post(
    "/estates/{estate_id}/parties",
    response_model=EstateOut,
    status_code=status.HTTP_201_CREATED,
)
async def add_party(estate_id: str, payload: PartyCreate) -> EstateOut:
    session = _get_session(estate_id)
    try:
        session.add_party(payload.name, payload.relation)
    except EstateValidationError as exc:
        raise _invalid(exc)
    return _estate_out(session)


@app.delete("/estates/{estate_id}/parties/{party_id}", response_model=EstateOut)
async def remove_party(estate_id: str, party_id: str) -> EstateOut:
    session = _get_session(estate_id)
    try:
        session.remove_party(party_id)
    except UnknownPartyError as exc:
        raise _not_found(exc)
    return _estate_out(session)


@app.post(
    "/estates/{estate_id}/properties",
    response_model=PropertyOut,
    status_code=status.HTTP_201_CREATED,
)
async def add_property(
    estate_id: str,
    payload: PropertyCreate,
    lang: Optional[str] = Query(default=None),
    valuation: ValuationService = Depends(get_valuation_service),
) -> PropertyOut:
    session = _get_session(estate_id)
    rate: Union[str, float, Decimal, None] = payload.rate
    source = ValuationSource.MANUAL
    analysis = ""
    if payload.estimate:
        lat = parse_latitude(payload.latitude)
        lng = parse_longitude(payload.longitude)
        location = Location(
            lat=session.default_location.lat if lat is None else lat,
            lng=session.default_location.lng if lng is None else lng,
        )
        estimate = await valuation.estimate(
            parse_amount(payload.area_sq_ft),
            location,
            payload.type,
            payload.description,
            lang_code=resolve_language(lang, settings.default_language),
        )
        rate = estimate.rate
        source = estimate.source
        analysis = estimate.analysis
    try:
        item = session.add_property(
            payload.name,
            payload.type,
            payload.area_sq_ft,
            latitude=payload.latitude,
            longitude=payload.longitude,
            address=payload.address,
            rate=rate,
            valuation_source=source,
            analysis=analysis,
            description=payload.description,
        )
    except EstateValidationError as exc:
        raise _invalid(exc)
    return _property_out(item)


@app.delete("/estates/{estate_id}/properties/{property_id}", response_model=EstateOut)
async def remove_property(estate_id: str, property_id: str) -> EstateOut:
    session = _get_session(estate_id)
    try:
        session.remove_property(property_id)
    except UnknownPropertyError as exc:
        raise _not_found(exc)
    return _estate_out(session)


@app.put("/estates/{estate_id}/properties/{property_id}/assignment", response_model=EstateOut)
async def assign_property(estate_id: str, property_id: str, payload: AssignmentUpdate) -> EstateOut:
    session = _get_session(estate_id)
    try:
        session.assign(property_id, payload.party_id)
    except (UnknownPartyError, UnknownPropertyError) as exc:
        raise _not_found(exc)
    return _estate_out(session)


@app.patch("/estates/{estate_id}/properties/{property_id}/value", response_model=PropertyOut)
async def renegotiate_property(estate_id: str, property_id: str, payload: ValueUpdate) -> PropertyOut:
    session = _get_session(estate_id)
    try:
        item = session.renegotiate(property_id, payload.total_value)
    except UnknownPropertyError as exc:
        raise _not_found(exc)
    except EstateValidationError as exc:
        raise _invalid(exc)
    return _property_out(item)


@app.get("/estates/{estate_id}/settlements", response_model=List[TransactionOut])
async def get_settlements(estate_id: str) -> List[TransactionOut]:
    return _transactions_out(_get_session(estate_id))


@app.get("/estates/{estate_id}/properties/{property_id}/advice", response_model=AdviceOut)
async def get_property_advice(
    estate_id: str,
    property_id: str,
    party_id: str = Query(...),
    lang: Optional[str] = Query(default=None),
    valuation: ValuationService = Depends(get_valuation_service),
) -> AdviceOut:
    session = _get_session(estate_id)
    try:
        item = session.get_property(property_id)
        party = session.get_party(party_id)
    except (UnknownPartyError, UnknownPropertyError) as exc:
        raise _not_found(exc)
    advice = await valuation.advise(
        item,
        party,
        lang_code=resolve_language(lang, settings.default_language),
    )
    return AdviceOut(property_id=item.id, party_id=party.id, advice=advice)


@app.get("/estates/{estate_id}/explanation", response_model=ExplanationOut)
async def get_distribution_explanation(
    estate_id: str,
    lang: Optional[str] = Query(default=None),
    valuation: ValuationService = Depends(get_valuation_service),
) -> ExplanationOut:
    session = _get_session(estate_id)
    text = await valuation.explain_distribution(
        session.parties,
        session.total_estate_value,
        lang_code=resolve_language(lang, settings.default_language),
    )
    return ExplanationOut(explanation=text)


@app.get("/estates/{estate_id}/report", response_class=PlainTextResponse)
async def get_report(estate_id: str, lang: Optional[str] = Query(default=None)) -> str:
    session = _get_session(estate_id)
    language = resolve_language(lang, settings.default_language)
    return render_estate_report(session, lang=language, currency=settings.currency)


@app.get("/estates/{estate_id}/report.pdf")
async def get_report_pdf(estate_id: str, lang: Optional[str] = Query(default=None)) -> Response:
    session = _get_session(estate_id)
    language = resolve_language(lang, settings.default_language)
    content = build_estate_report_pdf(session, lang=language, currency=settings.currency)
    return Response(
        content=content,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="estate_{session.id}.pdf"'},
    )


@app.get("/market/history", response_model=HistoryOut)
async def get_market_history() -> HistoryOut:
    first, last = HISTORICAL_DATA[0].year, HISTORICAL_DATA[-1].year
    return HistoryOut(
        points=[
            HistoryPointOut(year=point.year, gold_rate=point.gold_rate, property_index=point.property_index)
            for point in HISTORICAL_DATA
        ],
        gold_growth=growth_multiple("gold_rate", first, last),
        property_growth=growth_multiple("property_index", first, last),
        insight=INSIGHT,
    )
