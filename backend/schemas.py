from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic import ValidationError as PydanticValidationError
from typing import List, Optional, Type, TypeVar

from constants import FieldLimits, LendingDefaults
from exceptions import ValidationError

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"

SchemaT = TypeVar("SchemaT", bound=BaseModel)


class InputSchema(BaseModel):
    """Base for request payloads: surrounding whitespace is ignored, unknown fields rejected"""
    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")


def _no_duplicates(ids: List[int], field_name: str) -> List[int]:
    if len(set(ids)) != len(ids):
        raise ValueError(f"{field_name} contains duplicate ids")
    return ids


# Domain Schemas
class DomainCreate(InputSchema):
    name: str = Field(min_length=FieldLimits.DOMAIN_NAME_MIN, max_length=FieldLimits.DOMAIN_NAME_MAX)
    parent_id: Optional[int] = None


class DomainRename(InputSchema):
    name: str = Field(min_length=FieldLimits.DOMAIN_NAME_MIN, max_length=FieldLimits.DOMAIN_NAME_MAX)


# Catalog Schemas
class AuthorCreate(InputSchema):
    first_name: str = Field(min_length=FieldLimits.PERSON_NAME_MIN, max_length=FieldLimits.PERSON_NAME_MAX)
    last_name: str = Field(min_length=FieldLimits.PERSON_NAME_MIN, max_length=FieldLimits.PERSON_NAME_MAX)


class EditionCreate(InputSchema):
    publisher: str = Field(min_length=FieldLimits.PUBLISHER_MIN, max_length=FieldLimits.PUBLISHER_MAX)
    number_of_pages: int = Field(ge=FieldLimits.MIN_PAGES)
    year_of_publishing: int = Field(ge=FieldLimits.MIN_YEAR, le=FieldLimits.MAX_YEAR)
    type: str = Field(min_length=FieldLimits.EDITION_TYPE_MIN, max_length=FieldLimits.EDITION_TYPE_MAX)


class EditionUpdate(InputSchema):
    publisher: Optional[str] = Field(None, min_length=FieldLimits.PUBLISHER_MIN, max_length=FieldLimits.PUBLISHER_MAX)
    number_of_pages: Optional[int] = Field(None, ge=FieldLimits.MIN_PAGES)
    year_of_publishing: Optional[int] = Field(None, ge=FieldLimits.MIN_YEAR, le=FieldLimits.MAX_YEAR)
    type: Optional[str] = Field(None, min_length=FieldLimits.EDITION_TYPE_MIN, max_length=FieldLimits.EDITION_TYPE_MAX)


class BookCreate(InputSchema):
    """
    New catalog entry.

    available_copies defaults to every copy that may leave the reading room.
    """
    title: str = Field(min_length=FieldLimits.BOOK_TITLE_MIN, max_length=FieldLimits.BOOK_TITLE_MAX)
    author_ids: List[int] = Field(min_length=1)
    domain_ids: List[int] = Field(min_length=1)
    edition: EditionCreate
    total_copies: int = Field(ge=0)
    reading_room_copies: int = Field(0, ge=0)
    available_copies: Optional[int] = Field(None, ge=0)

    @field_validator('author_ids')
    @classmethod
    def unique_authors(cls, v):
        return _no_duplicates(v, 'author_ids')

    @field_validator('domain_ids')
    @classmethod
    def unique_domains(cls, v):
        return _no_duplicates(v, 'domain_ids')

    @model_validator(mode='after')
    def check_counters(self):
        if self.reading_room_copies > self.total_copies:
            raise ValueError('reading_room_copies cannot exceed total_copies')
        if self.available_copies is None:
            self.available_copies = self.total_copies - self.reading_room_copies
        if self.available_copies > self.total_copies:
            raise ValueError('available_copies cannot exceed total_copies')
        return self


class BookUpdate(InputSchema):
    """Partial update; counter consistency is checked against the stored book"""
    title: Optional[str] = Field(None, min_length=FieldLimits.BOOK_TITLE_MIN, max_length=FieldLimits.BOOK_TITLE_MAX)
    author_ids: Optional[List[int]] = Field(None, min_length=1)
    total_copies: Optional[int] = Field(None, ge=0)
    reading_room_copies: Optional[int] = Field(None, ge=0)
    available_copies: Optional[int] = Field(None, ge=0)


# Reader Schemas
class ReaderFields(InputSchema):
    @field_validator('email', 'phone', mode='before', check_fields=False)
    @classmethod
    def blank_to_none(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v


class ReaderCreate(ReaderFields):
    first_name: str = Field(min_length=FieldLimits.PERSON_NAME_MIN, max_length=FieldLimits.PERSON_NAME_MAX)
    last_name: str = Field(min_length=FieldLimits.PERSON_NAME_MIN, max_length=FieldLimits.PERSON_NAME_MAX)
    address: str = Field(min_length=FieldLimits.ADDRESS_MIN, max_length=FieldLimits.ADDRESS_MAX)
    email: Optional[str] = Field(None, max_length=FieldLimits.EMAIL_MAX, pattern=EMAIL_PATTERN)
    phone: Optional[str] = Field(None, max_length=FieldLimits.PHONE_MAX)
    is_employee: bool = False

    @model_validator(mode='after')
    def require_contact(self):
        if self.email is None and self.phone is None:
            raise ValueError('Either email or phone must be provided')
        return self


class ReaderUpdate(ReaderFields):
    """Partial update; the contact rule is checked against the stored reader"""
    first_name: Optional[str] = Field(None, min_length=FieldLimits.PERSON_NAME_MIN, max_length=FieldLimits.PERSON_NAME_MAX)
    last_name: Optional[str] = Field(None, min_length=FieldLimits.PERSON_NAME_MIN, max_length=FieldLimits.PERSON_NAME_MAX)
    address: Optional[str] = Field(None, min_length=FieldLimits.ADDRESS_MIN, max_length=FieldLimits.ADDRESS_MAX)
    email: Optional[str] = Field(None, max_length=FieldLimits.EMAIL_MAX, pattern=EMAIL_PATTERN)
    phone: Optional[str] = Field(None, max_length=FieldLimits.PHONE_MAX)
    is_employee: Optional[bool] = None


# Lending Schemas
class BorrowRequest(InputSchema):
    """
    Borrow request. Duplicate book ids are accepted here and rejected by the
    cooldown rule, so the caller learns which book was repeated.
    """
    reader_id: int
    book_ids: List[int] = Field(min_length=1)
    lent_by_id: Optional[int] = None


class ExtensionRequest(InputSchema):
    reader_id: int
    book_id: int
    extension_days: int = Field(
        ge=LendingDefaults.MIN_EXTENSION_DAYS,
        le=LendingDefaults.MAX_EXTENSION_DAYS_PER_REQUEST,
    )


class ReturnRequest(InputSchema):
    reader_id: int
    book_id: int


def parse_payload(schema_cls: Type[SchemaT], **data) -> SchemaT:
    """
    Validate keyword arguments against a schema.

    Raises:
        ValidationError: With field name -> first error message for every bad field
    """
    try:
        return schema_cls(**data)
    except PydanticValidationError as e:
        invalid_fields = {}
        for err in e.errors():
            field = ".".join(str(part) for part in err.get("loc", ())) or "__root__"
            invalid_fields.setdefault(field, err.get("msg", "invalid value"))
        raise ValidationError(
            f"Invalid {schema_cls.__name__}: {', '.join(sorted(invalid_fields))}",
            invalid_fields=invalid_fields,
        ) from e
