"""Validator tests — raw chat text to typed field values."""

import pytest

from form2chat.errors import AnswerError
from form2chat.models.form import (
    ChoiceField,
    DateField,
    FileField,
    NumberField,
    TextField,
)
from form2chat.validator import MSG_UPLOAD, validate


class TestText:

    def test_trimmed(self):
        assert validate(TextField(id="n", label="Name"), "  Ann Lee \n") == "Ann Lee"

    def test_required_empty_rejected(self):
        with pytest.raises(AnswerError, match="enter a value"):
            validate(TextField(id="n", label="Name", required=True), "   ")

    def test_optional_empty_is_blank(self):
        assert validate(TextField(id="n", label="Name"), "") == ""

    @pytest.mark.parametrize("raw", ["ann@example.com", "a.b+c@mail.example.org"])
    def test_email_accepted(self, raw):
        field = TextField(id="e", label="Email", is_email=True)
        assert validate(field, raw) == raw

    @pytest.mark.parametrize("raw", ["ann", "ann@example", "ann @example.com", "@example.com"])
    def test_email_rejected(self, raw):
        field = TextField(id="e", label="Email", is_email=True)
        with pytest.raises(AnswerError, match="email"):
            validate(field, raw)


class TestNumber:

    def test_integral_text_is_int(self):
        value = validate(NumberField(id="y", label="Years"), "12")
        assert value == 12 and isinstance(value, int)

    def test_decimal_is_float(self):
        assert validate(NumberField(id="y", label="Years"), "2.5") == 2.5

    @pytest.mark.parametrize("raw", ["twelve", "nan", "inf", "-Infinity", "1e999"])
    def test_non_finite_rejected(self, raw):
        with pytest.raises(AnswerError, match="valid number"):
            validate(NumberField(id="y", label="Years"), raw)

    def test_below_min_names_bound(self):
        field = NumberField(id="y", label="Years", min=1, max=60)
        with pytest.raises(AnswerError, match="no less than 1"):
            validate(field, "0")

    def test_above_max_names_bound(self):
        field = NumberField(id="y", label="Years", min=1, max=60)
        with pytest.raises(AnswerError, match="no greater than 60"):
            validate(field, "61")

    def test_bounds_inclusive(self):
        field = NumberField(id="y", label="Years", min=1, max=60)
        assert validate(field, "1") == 1
        assert validate(field, "60") == 60

    def test_optional_empty_is_none(self):
        assert validate(NumberField(id="y", label="Years"), " ") is None


class TestDate:

    @pytest.mark.parametrize(
        "raw",
        ["2024-05-31", "2024/05/31", "05/31/2024", "31 May 2024", "May 31, 2024", "31 may 2024"],
    )
    def test_normalized_to_iso(self, raw):
        assert validate(DateField(id="d", label="Date"), raw) == "2024-05-31"

    @pytest.mark.parametrize("raw", ["yesterday", "2024-02-30", "31/31/2024"])
    def test_invalid_rejected(self, raw):
        with pytest.raises(AnswerError, match="valid date"):
            validate(DateField(id="d", label="Date"), raw)


class TestChoice:

    @pytest.fixture
    def field(self):
        return ChoiceField(id="r", label="Role", options=["Manager", "Colleague", "Client"])

    def test_label_and_index_resolve_identically(self, field):
        assert validate(field, "Colleague") == validate(field, "2") == "Colleague"

    def test_case_insensitive(self, field):
        assert validate(field, "  cLIENT ") == "Client"

    def test_index_out_of_range(self, field):
        with pytest.raises(AnswerError) as exc:
            validate(field, "4")
        message = str(exc.value)
        assert "1. Manager" in message and "3. Client" in message

    def test_free_text_rejected(self, field):
        with pytest.raises(AnswerError):
            validate(field, "my boss")

    def test_numeric_label_wins_over_index(self):
        field = ChoiceField(id="s", label="Score", options=["5", "1"])
        assert validate(field, "1") == "1"

    @pytest.mark.parametrize("raw", ["²", "③", "①", "٢"])
    def test_non_ascii_digits_list_options(self, field, raw):
        with pytest.raises(AnswerError, match="Please choose one of the options"):
            validate(field, raw)


class TestFile:

    def test_text_never_accepted(self):
        with pytest.raises(AnswerError) as exc:
            validate(FileField(id="cv", label="CV"), "here is my cv")
        assert str(exc.value) == MSG_UPLOAD
