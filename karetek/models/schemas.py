from typing import List, Optional, Dict, Any, Union
from pydantic import BaseModel
from datetime import date, datetime
from enum import Enum

class Language(str, Enum):
    ENGLISH = "en"
    URDU = "ur"
    ARABIC = "ar"
    FRENCH = "fr"
    SPANISH = "es"
    GERMAN = "de"
    CHINESE = "zh"

SUPPORTED_LANGUAGES = [lang.value for lang in Language]

class Role(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"

class RecordKind(str, Enum):
    MEDICATIONS = "medications"
    ALLERGIES = "allergies"
    CONDITIONS = "conditions"

# Auth Models
class RegisterRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None
    firstName: Optional[str] = None
    lastName: Optional[str] = None
    dateOfBirth: Optional[date] = None
    gender: Optional[str] = None
    phoneNumber: Optional[str] = None

class LoginRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None

class AuthResponse(BaseModel):
    message: str
    token: str
    user: Dict[str, Any]

# Profile Models
class ProfileUpdate(BaseModel):
    firstName: Optional[str] = None
    lastName: Optional[str] = None
    dateOfBirth: Optional[date] = None
    gender: Optional[str] = None
    phoneNumber: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zipCode: Optional[str] = None
    country: Optional[str] = None
    bloodGroup: Optional[str] = None
    height: Optional[float] = None
    weight: Optional[float] = None
    emergencyContactName: Optional[str] = None
    emergencyContactPhone: Optional[str] = None
    medicalConditions: Optional[List[str]] = None
    allergies: Optional[List[str]] = None
    currentMedications: Optional[List[str]] = None

# camelCase request field -> users column
PROFILE_FIELD_MAP = {
    "firstName": "first_name",
    "lastName": "last_name",
    "dateOfBirth": "date_of_birth",
    "gender": "gender",
    "phoneNumber": "phone_number",
    "address": "address",
    "city": "city",
    "state": "state",
    "zipCode": "zip_code",
    "country": "country",
    "bloodGroup": "blood_group",
    "height": "height",
    "weight": "weight",
    "emergencyContactName": "emergency_contact_name",
    "emergencyContactPhone": "emergency_contact_phone",
}

# camelCase list field -> health-record kind
PROFILE_LIST_FIELDS = {
    "medicalConditions": RecordKind.CONDITIONS.value,
    "allergies": RecordKind.ALLERGIES.value,
    "currentMedications": RecordKind.MEDICATIONS.value,
}

# Health Metric Models
class HealthMetricCreate(BaseModel):
    metricType: Optional[str] = None
    value: Optional[Union[str, int, float]] = None
    unit: Optional[str] = None
    notes: Optional[str] = None
    recordedAt: Optional[datetime] = None

class HealthMetricUpdate(BaseModel):
    value: Optional[Union[str, int, float]] = None
    unit: Optional[str] = None
    notes: Optional[str] = None
    recordedAt: Optional[datetime] = None

# Health Record Models
class MedicationIn(BaseModel):
    name: Optional[str] = None
    dosage: Optional[str] = None
    frequency: Optional[str] = None
    startDate: Optional[date] = None
    notes: Optional[str] = None

class AllergyIn(BaseModel):
    name: Optional[str] = None
    reaction: Optional[str] = None
    severity: Optional[str] = None
    notes: Optional[str] = None

class ConditionIn(BaseModel):
    name: Optional[str] = None
    diagnosedDate: Optional[date] = None
    status: Optional[str] = None
    notes: Optional[str] = None

ENTRY_SCHEMAS = {
    RecordKind.MEDICATIONS.value: MedicationIn,
    RecordKind.ALLERGIES.value: AllergyIn,
    RecordKind.CONDITIONS.value: ConditionIn,
}

# camelCase entry field -> child table column
ENTRY_FIELD_MAP = {
    "name": "name",
    "dosage": "dosage",
    "frequency": "frequency",
    "startDate": "start_date",
    "notes": "notes",
    "reaction": "reaction",
    "severity": "severity",
    "diagnosedDate": "diagnosed_date",
    "status": "status",
}

# Chat Models
class ChatTurn(BaseModel):
    role: Role
    content: str

class ChatRequest(BaseModel):
    messages: Optional[List[ChatTurn]] = None
    language: str = Language.ENGLISH.value
    sessionId: Optional[str] = None

class ChatResponse(BaseModel):
    message: str
    saved: bool

class TranslateRequest(BaseModel):
    messages: Optional[List[ChatTurn]] = None
    targetLanguage: Optional[str] = None

class TranslateResponse(BaseModel):
    translatedText: str

# Avatar Models
class SpeakRequest(BaseModel):
    text: Optional[str] = None
    language: Optional[str] = None

class SpeakResponse(BaseModel):
    success: bool
    audioUrl: Optional[str] = None
    language: Optional[str] = None
    textOnly: Optional[bool] = None
    message: Optional[str] = None

# Stats Models
class StatsResponse(BaseModel):
    totalConsultations: int
    activeUsers: int
    healthMetricsTracked: int
