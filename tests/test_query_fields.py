import unittest
import uuid
from dataclasses import dataclass
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Optional

from sqlalchemy import Boolean, Date, DateTime, Float, Integer, LargeBinary, Numeric, String
from sqlalchemy.dialects.postgresql import UUID as PGUUID
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from app.core.errors import InvalidFilterValueError, UnknownFieldError
from app.services.query_fields import (
    FieldKind,
    is_date_only_literal,
    is_null_literal,
    normalize_identifier,
    record_fields,
)


class _Base(DeclarativeBase):
    pass


class _FieldsTestModel(_Base):
    __tablename__ = "_qf_test_model"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    bool_col: Mapped[bool] = mapped_column(Boolean)
    int_col: Mapped[int] = mapped_column(Integer)
    float_col: Mapped[float] = mapped_column(Float)
    numeric_col: Mapped[Decimal] = mapped_column(Numeric(12, 2))
    date_col: Mapped[date] = mapped_column(Date)
    dt_col: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    uuid_col: Mapped[uuid.UUID] = mapped_column(PGUUID(as_uuid=True))
    text_col: Mapped[str] = mapped_column(String(50))
    blob_col: Mapped[bytes] = mapped_column(LargeBinary)


@dataclass
class _Patient:
    patient_id: uuid.UUID
    first_name: str
    date_of_birth: Optional[date] = None
    weight: float | None = None
    tags: Optional[list] = None


class _Plain:
    name = "x"


class FieldCoercionTests(unittest.TestCase):
    def setUp(self):
        self.fields = record_fields(_FieldsTestModel)

    def _coerce(self, name: str, value):
        return self.fields.resolve(name).coerce(value)

    def test_boolean_accepts_string_values(self):
        self.assertTrue(self._coerce("bool_col", "true"))
        self.assertTrue(self._coerce("bool_col", "Yes"))
        self.assertFalse(self._coerce("bool_col", "0"))
        self.assertFalse(self._coerce("bool_col", "n"))

    def test_boolean_invalid_value_raises(self):
        with self.assertRaises(InvalidFilterValueError) as ctx:
            self._coerce("bool_col", "maybe")
        self.assertEqual(ctx.exception.field_name, "bool_col")

    def test_numbers_accept_string_values(self):
        self.assertEqual(self._coerce("int_col", "42"), 42)
        self.assertAlmostEqual(self._coerce("float_col", "3.14"), 3.14)
        self.assertAlmostEqual(self._coerce("float_col", "3,14"), 3.14)
        self.assertEqual(self._coerce("numeric_col", "10.50"), Decimal("10.50"))

    def test_number_invalid_value_raises(self):
        with self.assertRaises(InvalidFilterValueError):
            self._coerce("int_col", "4.5")
        with self.assertRaises(InvalidFilterValueError):
            self._coerce("numeric_col", "ten")

    def test_non_finite_numbers_are_rejected(self):
        for column in ("float_col", "numeric_col"):
            for value in ("NaN", "sNaN", "inf", "-Infinity", "1e999"):
                with self.assertRaises(InvalidFilterValueError, msg=(column, value)):
                    self._coerce(column, value)
        with self.assertRaises(InvalidFilterValueError):
            self._coerce("int_col", float("inf"))

    def test_date_accepts_date_and_datetime_strings(self):
        self.assertEqual(self._coerce("date_col", "2026-02-26"), date(2026, 2, 26))
        self.assertEqual(self._coerce("date_col", "2026-02-26T10:00:00Z"), date(2026, 2, 26))
        with self.assertRaises(InvalidFilterValueError):
            self._coerce("date_col", "26.02.2026")

    def test_datetime_values_are_timezone_aware(self):
        self.assertEqual(
            self._coerce("dt_col", "2026-02-26T10:15:00Z"),
            datetime(2026, 2, 26, 10, 15, tzinfo=timezone.utc),
        )
        self.assertEqual(
            self._coerce("dt_col", "2026-02-26"),
            datetime(2026, 2, 26, 0, 0, tzinfo=timezone.utc),
        )
        with self.assertRaises(InvalidFilterValueError):
            self._coerce("dt_col", "yesterday")

    def test_uuid_parses_or_raises(self):
        value = uuid.uuid4()
        self.assertEqual(self._coerce("uuid_col", str(value)), value)
        with self.assertRaises(InvalidFilterValueError):
            self._coerce("uuid_col", "not-a-uuid")

    def test_text_is_kept_verbatim(self):
        self.assertEqual(self._coerce("text_col", "  Mixed Case "), "  Mixed Case ")


class FieldRegistryTests(unittest.TestCase):
    def test_mapped_class_kinds(self):
        fields = record_fields(_FieldsTestModel)
        kinds = {name: accessor.kind for name, accessor in fields.fields.items()}
        self.assertEqual(kinds["bool_col"], FieldKind.BOOLEAN)
        self.assertEqual(kinds["int_col"], FieldKind.NUMBER)
        self.assertEqual(kinds["numeric_col"], FieldKind.NUMBER)
        self.assertEqual(kinds["date_col"], FieldKind.DATE)
        self.assertEqual(kinds["dt_col"], FieldKind.DATETIME)
        self.assertEqual(kinds["uuid_col"], FieldKind.UUID)
        self.assertEqual(kinds["text_col"], FieldKind.TEXT)
        self.assertNotIn("blob_col", kinds)
        self.assertEqual(fields.primary_key, ("id",))
        self.assertEqual([accessor.name for accessor in fields.text_fields], ["text_col"])

    def test_registry_is_cached_per_type(self):
        self.assertIs(record_fields(_FieldsTestModel), record_fields(_FieldsTestModel))

    def test_dataclass_optional_hints_are_unwrapped(self):
        fields = record_fields(_Patient)
        self.assertEqual(fields.resolve("patient_id").kind, FieldKind.UUID)
        self.assertEqual(fields.resolve("DateOfBirth").kind, FieldKind.DATE)
        self.assertEqual(fields.resolve("weight").kind, FieldKind.NUMBER)
        self.assertNotIn("tags", fields.fields)

    def test_resolve_accepts_common_spellings(self):
        fields = record_fields(_Patient)
        for spelling in ("first_name", "FirstName", "firstName", "first-name", " FirstName "):
            self.assertEqual(fields.resolve(spelling).name, "first_name")

    def test_resolve_unknown_field_names_record_type(self):
        with self.assertRaises(UnknownFieldError) as ctx:
            record_fields(_Patient).resolve("LastName")
        self.assertEqual(ctx.exception.field_name, "LastName")
        self.assertIn("_Patient", str(ctx.exception))

    def test_unsupported_record_type_raises_type_error(self):
        with self.assertRaises(TypeError):
            record_fields(_Plain)


class LiteralHelperTests(unittest.TestCase):
    def test_normalize_identifier(self):
        self.assertEqual(normalize_identifier("IsDeleted"), "is_deleted")
        self.assertEqual(normalize_identifier("visit-modes"), "visit_modes")
        self.assertEqual(normalize_identifier("VisitMode"), "visit_mode")
        self.assertEqual(normalize_identifier("already_snake"), "already_snake")
        self.assertEqual(normalize_identifier("  "), "")
        self.assertEqual(normalize_identifier("ID"), "id")
        self.assertEqual(normalize_identifier("PatientID"), "patient_id")
        self.assertEqual(normalize_identifier("HTTPStatus"), "http_status")
        self.assertEqual(normalize_identifier("serialNumber2"), "serial_number2")

    def test_null_literals(self):
        self.assertTrue(is_null_literal(None))
        self.assertTrue(is_null_literal(""))
        self.assertTrue(is_null_literal(" NULL "))
        self.assertFalse(is_null_literal("none"))
        self.assertFalse(is_null_literal("0"))

    def test_date_only_literal(self):
        self.assertTrue(is_date_only_literal("2026-02-26"))
        self.assertTrue(is_date_only_literal(date(2026, 2, 26)))
        self.assertFalse(is_date_only_literal("2026-02-26T00:00:00"))
        self.assertFalse(is_date_only_literal(datetime(2026, 2, 26)))
        self.assertFalse(is_date_only_literal("tomorrow"))


if __name__ == "__main__":
    unittest.main()
