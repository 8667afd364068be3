"""System prompt assembly for medical chat turns.

The prompt is a persona template chosen by language, followed by a
confidential patient context block when the caller is signed in. The
context is best effort: if the profile cannot be read or formatted the
bare persona is used and the failure is only logged.
"""
import math
from datetime import date, datetime
from typing import Any, Dict, List, Optional, Union

from loguru import logger

from karetek.core.identity import ANONYMOUS, Anonymous, Authenticated, Identity

MEDICAL_SYSTEM_PROMPT = """You are Karetek, a knowledgeable and empathetic AI health assistant. Your role is to:

1. Ask clarifying questions about symptoms, duration, severity, and relevant medical history
2. Provide general health information and wellness guidance
3. Suggest when medical attention may be needed
4. NEVER diagnose conditions or prescribe medications
5. Always recommend consulting healthcare professionals for serious concerns
6. Be supportive, clear, and use simple language

Remember: You provide health information and guidance, not medical diagnoses or treatment plans."""

MEDICAL_SYSTEM_PROMPT_URDU = """آپ Karetek ہیں، ایک باعلم اور ہمدرد AI صحت معاون۔ آپ کا کردار یہ ہے:

1. علامات، مدت، شدت اور متعلقہ طبی تاریخ کے بارے میں وضاحتی سوالات پوچھیں
2. عام صحت کی معلومات اور تندرستی کی رہنمائی فراہم کریں
3. بتائیں کہ کب طبی توجہ کی ضرورت ہو سکتی ہے
4. کبھی بھی بیماریوں کی تشخیص نہ کریں اور نہ ہی دوائیں تجویز کریں
5. سنجیدہ معاملات کے لیے ہمیشہ صحت کے ماہرین سے مشورہ کرنے کی سفارش کریں
6. معاون بنیں، واضح رہیں اور سادہ زبان استعمال کریں

یاد رکھیں: آپ صحت کی معلومات اور رہنمائی فراہم کرتے ہیں، طبی تشخیص یا علاج کے منصوبے نہیں۔"""

PERSONAS = {
    "en": MEDICAL_SYSTEM_PROMPT,
    "ur": MEDICAL_SYSTEM_PROMPT_URDU,
}

CONTEXT_GUIDANCE = (
    "Use this information to provide personalized health guidance. Consider their age, "
    "gender, existing conditions, and medications when giving advice."
)

DAYS_PER_YEAR = 365.25

def persona_for(language: Optional[str]) -> str:
    return PERSONAS.get(language or "en", MEDICAL_SYSTEM_PROMPT)

def compute_age(date_of_birth: Union[date, datetime, str, None], today: Optional[date] = None) -> Optional[int]:
    """Whole years since ``date_of_birth`` using a 365.25-day year"""
    if not date_of_birth:
        return None
    if isinstance(date_of_birth, str):
        date_of_birth = date.fromisoformat(date_of_birth[:10])
    if isinstance(date_of_birth, datetime):
        date_of_birth = date_of_birth.date()

    today = today or date.today()
    return math.floor((today - date_of_birth).days / DAYS_PER_YEAR)

def _number(value: Any) -> str:
    return f"{value:g}" if isinstance(value, float) else str(value)

def _joined(values: Optional[List[str]]) -> Optional[str]:
    values = [value for value in (values or []) if value]
    return ", ".join(values) if values else None

def format_patient_context(profile: Dict[str, Any], today: Optional[date] = None) -> str:
    lines = ["", "", "PATIENT CONTEXT (Confidential):"]

    name = " ".join(part for part in (profile.get("first_name"), profile.get("last_name")) if part)
    if name:
        lines.append(f"- Name: {name}")

    age = compute_age(profile.get("date_of_birth"), today)
    if age:
        lines.append(f"- Age: {age} years")
    if profile.get("gender"):
        lines.append(f"- Gender: {profile['gender']}")
    if profile.get("blood_group"):
        lines.append(f"- Blood Group: {profile['blood_group']}")
    if profile.get("height") and profile.get("weight"):
        lines.append(f"- Height: {_number(profile['height'])}cm, Weight: {_number(profile['weight'])}kg")

    for label, key in (
        ("Medical Conditions", "medical_conditions"),
        ("Allergies", "allergies"),
        ("Current Medications", "current_medications"),
    ):
        joined = _joined(profile.get(key))
        if joined:
            lines.append(f"- {label}: {joined}")

    lines.append("")
    lines.append(CONTEXT_GUIDANCE)
    return "\n".join(lines)

class ContextAssembler:
    def __init__(self, repository):
        self.repository = repository

    def build_system_prompt(self, language: str = "en", identity: Identity = ANONYMOUS) -> str:
        template = persona_for(language)

        match identity:
            case Authenticated(user_id=user_id):
                try:
                    profile = self.repository.get_profile_context(user_id)
                    if not profile:
                        logger.warning(f"No profile found for user {user_id}, using bare persona")
                        return template
                    return template + format_patient_context(profile)
                except Exception as e:
                    logger.error(f"Failed to fetch user context for {user_id}: {e}")
                    return template
            case Anonymous():
                return template
