from __future__ import annotations

from typing import Dict, Optional

DEFAULT_LANGUAGE = "en"
SUPPORTED_LANGUAGES = {"en", "ur", "dev"}

# Minimal dictionaries; unknown keys fall back to English, then to the key itself.
TEXTS_EN: Dict[str, str] = {
    # Valuation / advice collaborator
    "ai.valuation.no_key": "API key missing. Using mock valuation.",
    "ai.valuation.unavailable": "AI service unavailable. Please enter the rate manually.",
    "ai.valuation.no_analysis": "Could not determine a precise value.",
    "ai.advice.no_key": "Please configure an API key for AI advice.",
    "ai.advice.unavailable": "Could not generate advice.",
    "ai.advice.empty": "No advice generated.",
    "ai.explain.no_key": "AI explanation is unavailable.",
    "ai.explain.unavailable": "Calculation explanation unavailable.",

    # Relations
    "relation.husband": "Husband",
    "relation.wife": "Wife",
    "relation.son": "Son",
    "relation.daughter": "Daughter",
    "relation.father": "Father",
    "relation.mother": "Mother",
    "relation.other": "Other",

    # Property types
    "property_type.residential": "Residential",
    "property_type.commercial": "Commercial",
    "property_type.agricultural": "Agricultural",
    "property_type.plot": "Plot",

    # Report
    "report.title": "Estate distribution report",
    "report.deceased": "Estate of: {name}",
    "report.total": "Total estate value: {amount}",
    "report.parties.header": "Inheritors and shares",
    "report.party.line": "{name} ({relation}): {share} = {percentage}%, target {target}",
    "report.parties.none": "No inheritors added yet.",
    "report.properties.header": "Properties",
    "report.property.line": "{name} ({type}, {area} sq ft): {value}, assigned to {owner}",
    "report.property.drift": "negotiated {drift}% vs original {original}",
    "report.property.unassigned": "unassigned",
    "report.properties.none": "No properties added yet.",
    "report.balances.header": "Balances",
    "report.balance.line": "{name}: assets {assigned}, target {target}, balance {balance}",
    "report.settlement.header": "Cash settlement",
    "report.settlement.line": "{payer} pays {payee}: {amount}",
    "report.settlement.none": "No cash transfers needed.",
    "report.incomplete": "Shares cover only {allocated}% of the estate; {unallocated}% is not distributed automatically. Consult a scholar.",
    "report.note.debts": "Funeral costs, debts and bequests (up to 1/3) must be settled before distribution.",
    "report.note.simplified": "This is a simplified automatic calculation; complex cases should be confirmed with a scholar.",
}

TEXTS_UR: Dict[str, str] = {
    "ai.valuation.no_key": "API کلید موجود نہیں۔ فرضی قیمت استعمال کی جا رہی ہے۔",
    "ai.valuation.unavailable": "AI سروس دستیاب نہیں۔ براہ کرم ریٹ خود درج کریں۔",
    "ai.advice.unavailable": "مشورہ تیار نہیں ہو سکا۔",
    "ai.explain.unavailable": "تقسیم کی وضاحت دستیاب نہیں۔",

    "relation.husband": "شوہر",
    "relation.wife": "بیوی",
    "relation.son": "بیٹا",
    "relation.daughter": "بیٹی",
    "relation.father": "والد",
    "relation.mother": "والدہ",
    "relation.other": "دیگر",

    "report.title": "ترکہ کی تقسیم کی رپورٹ",
    "report.deceased": "مرحوم: {name}",
    "report.total": "کل ترکہ: {amount}",
    "report.parties.header": "ورثاء اور حصے",
    "report.properties.header": "جائیدادیں",
    "report.settlement.header": "نقد تصفیہ",
    "report.settlement.line": "{payer} ادا کرے {payee} کو: {amount}",
    "report.settlement.none": "کسی نقد لین دین کی ضرورت نہیں۔",
}

TEXTS: Dict[str, Dict[str, str]] = {
    "en": TEXTS_EN,
    "ur": TEXTS_UR,
}


def resolve_language(*codes: Optional[str]) -> str:
    for code in codes:
        if not code:
            continue
        normalized = code.lower()
        if normalized in SUPPORTED_LANGUAGES:
            return normalized
    return DEFAULT_LANGUAGE


def get_text(key: str, lang_code: Optional[str] = None, **kwargs) -> str:
    language = (lang_code or DEFAULT_LANGUAGE).lower()
    if language == "dev":
        text = key
    else:
        text = TEXTS.get(language, {}).get(key)
        if text is None:
            text = TEXTS.get(DEFAULT_LANGUAGE, {}).get(key) or key
    try:
        return text.format(**kwargs) if kwargs else text
    except (KeyError, IndexError, ValueError):
        return text
