"""
Record models for the chapter portal collections.

Every collection row shares the same base shape: an `id` (the Firestore
document ID) plus, depending on the kind, creation and update timestamps.
Each model includes:
  - A `to_dict()` instance method for serialization (enums as plain values)
  - A `from_dict(data, doc_id)` classmethod for deserialization
  - `coerce_partial(partial)` for validating a partial update payload

Datetime fields are kept as native datetime objects since Firestore
handles them natively.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, fields
from datetime import datetime
from typing import Any, ClassVar, Dict, Optional

from portal.errors import InvalidFieldError


# ---------------------------------------------------------------------------
# Choices
# ---------------------------------------------------------------------------

class UserRole(str, enum.Enum):
    ADMIN = 'admin'
    GUEST = 'guest'


class AccountStatus(str, enum.Enum):
    ACTIVE = 'active'
    INACTIVE = 'inactive'


class Gender(str, enum.Enum):
    MALE = 'Male'
    FEMALE = 'Female'


class Semester(str, enum.Enum):
    A = 'A'
    B = 'B'


class HonorRollType(str, enum.Enum):
    GC = 'GC'
    GLC = 'GLC'


class TimelineCategory(str, enum.Enum):
    FRATERNITY = 'Fraternity'
    SORORITY = 'Sorority'


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _parse_datetime(value) -> Optional[datetime]:
    """Convert a value to datetime. Accepts datetime objects, ISO-format
    strings, and Firestore DatetimeWithNanoseconds objects."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, str):
        value = value.replace("Z", "+00:00")
        try:
            return datetime.fromisoformat(value)
        except (ValueError, TypeError):
            return None
    return None


def coerce_choice(field_name: str, value, choices):
    if isinstance(value, choices):
        return value
    try:
        return choices(value)
    except ValueError:
        raise InvalidFieldError(field_name, value, [c.value for c in choices]) from None


def coerce_text(field_name: str, value) -> str:
    """Accept text as is and numbers as their string form; reject the rest."""
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    raise InvalidFieldError(field_name, value)


# ===========================================================================
# Base record
# ===========================================================================

@dataclass
class Record:
    TABLE: ClassVar[str] = ''
    CREATED_FIELD: ClassVar[Optional[str]] = 'date_created'
    UPDATED_FIELD: ClassVar[Optional[str]] = 'date_updated'
    CHOICES: ClassVar[Dict[str, type]] = {}

    id: Optional[str] = None

    @classmethod
    def timestamp_fields(cls):
        return tuple(f for f in (cls.CREATED_FIELD, cls.UPDATED_FIELD) if f)

    @classmethod
    def field_names(cls):
        return [f.name for f in fields(cls) if f.name != 'id']

    @classmethod
    def text_fields(cls):
        return [f.name for f in fields(cls) if f.type in (str, 'str')]

    @classmethod
    def _coerce(cls, name: str, value):
        if name in cls.CHOICES:
            return coerce_choice(name, value, cls.CHOICES[name])
        if name in cls.timestamp_fields():
            return _parse_datetime(value)
        if name in cls.text_fields():
            return coerce_text(name, value)
        return value

    @classmethod
    def coerce_partial(cls, partial: Dict[str, Any]) -> Dict[str, Any]:
        """Validate the known choice and text fields of a partial payload.

        Unknown keys pass through untouched; the identifier and the
        creation timestamp are never part of an update.
        """
        data = {}
        for key, value in partial.items():
            if key == 'id' or key == cls.CREATED_FIELD:
                continue
            if key in cls.CHOICES:
                value = coerce_choice(key, value, cls.CHOICES[key]).value
            elif key in cls.text_fields() and value is not None:
                value = coerce_text(key, value)
            data[key] = value
        return data

    # -- Serialization -------------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        data = {}
        for name in self.field_names():
            value = getattr(self, name)
            if isinstance(value, enum.Enum):
                value = value.value
            data[name] = value
        return data

    def to_row(self) -> Dict[str, Any]:
        row = self.to_dict()
        row['id'] = self.id
        return row

    @classmethod
    def from_dict(cls, data: Dict[str, Any], doc_id: Optional[str] = None):
        kwargs = {}
        for name in cls.field_names():
            if data.get(name) is None:
                continue
            kwargs[name] = cls._coerce(name, data[name])
        return cls(id=doc_id if doc_id is not None else data.get('id'), **kwargs)


# ===========================================================================
# 1. Member
# ===========================================================================

@dataclass
class Member(Record):
    TABLE: ClassVar[str] = 'members'
    CHOICES: ClassVar[Dict[str, type]] = {'gender': Gender, 'semester': Semester}

    last_name: str = ""
    first_name: str = ""
    middle_name: str = ""
    gender: Gender = Gender.MALE
    batch_year: str = ""
    batch_name: str = ""
    id_number: str = ""
    semester: Semester = Semester.A
    chapter: str = ""
    school: str = ""
    date_created: Optional[datetime] = None
    date_updated: Optional[datetime] = None

    @property
    def full_name(self) -> str:
        return ' '.join(p for p in (self.first_name, self.middle_name, self.last_name) if p)


# ===========================================================================
# 2. Organizer
# ===========================================================================

@dataclass
class Organizer(Record):
    TABLE: ClassVar[str] = 'organizers'

    last_name: str = ""
    first_name: str = ""
    middle_name: str = ""
    batch_year: str = ""
    id_number: str = ""
    chapter: str = ""
    school: str = ""
    date_created: Optional[datetime] = None
    date_updated: Optional[datetime] = None


# ===========================================================================
# 3. Affiliate
# ===========================================================================

@dataclass
class Affiliate(Record):
    TABLE: ClassVar[str] = 'affiliates'
    CHOICES: ClassVar[Dict[str, type]] = {'gender': Gender}

    last_name: str = ""
    first_name: str = ""
    middle_name: str = ""
    gender: Gender = Gender.MALE
    batch_year: str = ""
    id_number: str = ""
    chapter: str = ""
    school: str = ""
    date_created: Optional[datetime] = None
    date_updated: Optional[datetime] = None


# ===========================================================================
# 4. Honor roll entry (Grand Chancellors / Grand Lady Chancellors)
# ===========================================================================

@dataclass
class HonorRollEntry(Record):
    TABLE: ClassVar[str] = 'grand_chancellors'
    CHOICES: ClassVar[Dict[str, type]] = {'type': HonorRollType}

    last_name: str = ""
    first_name: str = ""
    middle_name: str = ""
    year: str = ""
    term: str = ""
    type: HonorRollType = HonorRollType.GC
    date_created: Optional[datetime] = None
    date_updated: Optional[datetime] = None


# ===========================================================================
# 5. User profile
# ===========================================================================

@dataclass
class UserProfile(Record):
    """Profile row keyed by the Firebase Auth UID.

    Credentials live only in Firebase Auth, never here.
    """

    TABLE: ClassVar[str] = 'profiles'
    CREATED_FIELD: ClassVar[Optional[str]] = None
    UPDATED_FIELD: ClassVar[Optional[str]] = None
    CHOICES: ClassVar[Dict[str, type]] = {'role': UserRole, 'status': AccountStatus}

    name: str = ""
    email: str = ""
    role: UserRole = UserRole.GUEST
    status: AccountStatus = AccountStatus.ACTIVE

    @classmethod
    def coerce_partial(cls, partial: Dict[str, Any]) -> Dict[str, Any]:
        data = super().coerce_partial(partial)
        data.pop('password', None)
        return data


# ===========================================================================
# 6. Content page
# ===========================================================================

@dataclass
class ContentPage(Record):
    """Editable page section; `id` is the lookup key (e.g. 'about_intro')."""

    TABLE: ClassVar[str] = 'content_pages'
    CREATED_FIELD: ClassVar[Optional[str]] = None
    UPDATED_FIELD: ClassVar[Optional[str]] = 'last_updated'

    title: str = ""
    content: str = ""
    last_updated: Optional[datetime] = None


# ===========================================================================
# 7. Timeline event
# ===========================================================================

@dataclass
class TimelineEvent(Record):
    TABLE: ClassVar[str] = 'timeline_events'
    UPDATED_FIELD: ClassVar[Optional[str]] = None
    CHOICES: ClassVar[Dict[str, type]] = {'category': TimelineCategory}

    year: str = ""
    date: str = ""
    title: str = ""
    description: str = ""
    category: TimelineCategory = TimelineCategory.FRATERNITY
    date_created: Optional[datetime] = None


RECORD_MODELS = (Member, Organizer, Affiliate, HonorRollEntry, UserProfile, ContentPage, TimelineEvent)


# ===========================================================================
# Session and settings snapshots
# ===========================================================================

@dataclass(frozen=True)
class Identity:
    """The resolved caller: profile data for the signed-in Firebase user."""

    id: str
    name: str
    email: str
    role: UserRole
    status: AccountStatus

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    @property
    def is_active(self) -> bool:
        return self.status == AccountStatus.ACTIVE

    @classmethod
    def from_profile(cls, profile: UserProfile, email: Optional[str] = None) -> Identity:
        return cls(
            id=profile.id,
            name=profile.name,
            email=email or profile.email,
            role=profile.role,
            status=profile.status,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "role": self.role.value,
            "status": self.status.value,
        }


@dataclass(frozen=True)
class Settings:
    chapter_name: str
    logo_url: str

    def to_dict(self) -> Dict[str, Any]:
        return {"chapter_name": self.chapter_name, "logo_url": self.logo_url}
