from __future__ import annotations

from decimal import Decimal, localcontext
from fractions import Fraction

from warasat.services.estate.session import EstateSession
from warasat.services.i18n.localization import get_text

# (style, text) pairs; styles match the PDF stylesheet.
ReportContent = list[tuple[str, str]]


def format_fraction(value: Fraction) -> str:
    if value.denominator == 1:
        return str(value.numerator)
    return f"{value.numerator}/{value.denominator}"


def format_money(amount: Decimal, *, currency: str = "") -> str:
    with localcontext() as ctx:
        # integer digits plus two decimals must fit the context precision
        ctx.prec = max(ctx.prec, amount.adjusted() + 4)
        quantized = amount.quantize(Decimal("0.01"))
        if quantized == quantized.to_integral():
            number = f"{int(quantized):,}"
        else:
            number = f"{quantized:,.2f}"
    return f"{number} {currency}".rstrip()


def format_percentage(value: float | Decimal) -> str:
    return f"{float(value):.2f}"


def build_report_content(
    session: EstateSession,
    *,
    lang: str = "en",
    currency: str = "PKR",
) -> ReportContent:
    content: ReportContent = [("title", get_text("report.title", lang))]
    if session.deceased_name:
        content.append(("subtitle", get_text("report.deceased", lang, name=session.deceased_name)))
    total = session.total_estate_value
    content.append(("subtitle", get_text("report.total", lang, amount=format_money(total, currency=currency))))

    names = {party.id: party.name for party in session.parties}
    financials = {item.id: item for item in session.financials()}

    content.append(("section", get_text("report.parties.header", lang)))
    if not session.parties:
        content.append(("body", get_text("report.parties.none", lang)))
    for party in session.parties:
        content.append(
            (
                "body",
                get_text(
                    "report.party.line",
                    lang,
                    name=party.name,
                    relation=get_text(f"relation.{party.relation.value}", lang),
                    share=format_fraction(party.share),
                    percentage=format_percentage(party.percentage),
                    target=format_money(financials[party.id].target_value, currency=currency),
                ),
            )
        )
    allocation = session.allocation
    if session.parties and not allocation.is_complete:
        content.append(
            (
                "note",
                get_text(
                    "report.incomplete",
                    lang,
                    allocated=format_percentage(float(allocation.allocated * 100)),
                    unallocated=format_percentage(float(allocation.unallocated * 100)),
                ),
            )
        )

    content.append(("section", get_text("report.properties.header", lang)))
    if not session.properties:
        content.append(("body", get_text("report.properties.none", lang)))
    for item in session.properties:
        owner = names.get(item.assigned_to or "") or get_text("report.property.unassigned", lang)
        line = get_text(
            "report.property.line",
            lang,
            name=item.name,
            type=get_text(f"property_type.{item.type.value}", lang),
            area=format_money(item.area_sq_ft),
            value=format_money(item.total_value, currency=currency),
            owner=owner,
        )
        if item.total_value != item.original_value:
            drift = get_text(
                "report.property.drift",
                lang,
                drift=format_percentage(item.drift_percentage),
                original=format_money(item.original_value, currency=currency),
            )
            line = f"{line} ({drift})"
        content.append(("body", line))

    if session.parties:
        content.append(("section", get_text("report.balances.header", lang)))
        for row in financials.values():
            content.append(
                (
                    "body",
                    get_text(
                        "report.balance.line",
                        lang,
                        name=row.name,
                        assigned=format_money(row.assigned_value, currency=currency),
                        target=format_money(row.target_value, currency=currency),
                        balance=format_money(row.balance, currency=currency),
                    ),
                )
            )

    content.append(("section", get_text("report.settlement.header", lang)))
    transactions = session.settlements()
    if not transactions:
        content.append(("body", get_text("report.settlement.none", lang)))
    for tx in transactions:
        content.append(
            (
                "body",
                get_text(
                    "report.settlement.line",
                    lang,
                    payer=tx.from_name,
                    payee=tx.to_name,
                    amount=format_money(tx.amount, currency=currency),
                ),
            )
        )

    content.append(("note", get_text("report.note.debts", lang)))
    content.append(("note", get_text("report.note.simplified", lang)))
    return content


def render_estate_report(
    session: EstateSession,
    *,
    lang: str = "en",
    currency: str = "PKR",
) -> str:
    lines: list[str] = []
    for style, text in build_report_content(session, lang=lang, currency=currency):
        if style == "section":
            lines.extend(["", text])
        elif style == "body":
            lines.append(f"• {text}")
        elif style == "note":
            lines.append(f"📌 {text}")
        else:
            lines.append(text)
    return "\n".join(lines).strip()
