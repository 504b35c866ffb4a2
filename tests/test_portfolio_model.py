"""Tests for the portfolio record model."""

import pytest

from portfolio_builder.models.errors import PersistenceError
from portfolio_builder.models.portfolio import PortfolioRecord, Project, parse_skills


class TestParseSkills:

    def test_splits_and_trims(self):
        assert parse_skills("C, Math ,Logic") == ("C", "Math", "Logic")

    def test_drops_empty_tokens(self):
        assert parse_skills("Python,, ,SQL,") == ("Python", "SQL")

    def test_empty_input(self):
        assert parse_skills("") == ()
        assert parse_skills(" , ,") == ()


class TestPortfolioRecord:

    def test_lists_are_stored_as_tuples(self):
        record = PortfolioRecord(
            name="A",
            age=1,
            occupation="B",
            contact_information="C",
            short_bio="D",
            skills=["x"],
            projects=[Project("p", "d")],
        )
        assert record.skills == ("x",)
        assert isinstance(record.projects, tuple)

    def test_complete_record(self, sample_record):
        assert sample_record.is_complete()
        assert sample_record.missing_fields() == []

    def test_missing_fields_in_form_order(self):
        record = PortfolioRecord(
            name="", age=-1, occupation="", contact_information="", short_bio=""
        )
        assert record.missing_fields() == [
            "name",
            "age",
            "occupation",
            "contactInformation",
            "shortBio",
            "skills",
            "projects",
        ]

    def test_initials(self, sample_record):
        assert sample_record.initials() == "AD"

    def test_with_short_bio_returns_new_record(self, sample_record):
        updated = sample_record.with_short_bio("New bio")
        assert updated.short_bio == "New bio"
        assert sample_record.short_bio == "First programmer."

    def test_with_project_descriptions_keeps_names_and_order(self, sample_record):
        updated = sample_record.with_project_descriptions(["one", "two"])
        assert [p.name for p in updated.projects] == ["Engine Notes", "Bernoulli"]
        assert updated.project_descriptions() == ["one", "two"]

    def test_with_project_descriptions_rejects_length_mismatch(self, sample_record):
        with pytest.raises(ValueError):
            sample_record.with_project_descriptions(["only one"])

    def test_to_dict_uses_stored_keys(self, sample_record):
        data = sample_record.to_dict()
        assert list(data) == [
            "name",
            "age",
            "occupation",
            "contactInformation",
            "shortBio",
            "skills",
            "projects",
            "photo",
        ]
        assert data["skills"] == ["C", "Math", "Logic"]
        assert data["projects"][0] == {
            "name": "Engine Notes",
            "description": "Notes on the Analytical Engine",
        }

    def test_from_dict_round_trip(self, sample_record):
        assert PortfolioRecord.from_dict(sample_record.to_dict()) == sample_record

    def test_from_dict_allows_missing_photo(self, sample_record):
        data = sample_record.to_dict()
        del data["photo"]
        assert PortfolioRecord.from_dict(data).photo is None


class TestFromDictRejectsMalformedData:

    @pytest.fixture
    def data(self, sample_record):
        return sample_record.to_dict()

    def test_not_an_object(self):
        with pytest.raises(PersistenceError):
            PortfolioRecord.from_dict(["not", "a", "dict"])

    def test_missing_key(self, data):
        del data["shortBio"]
        with pytest.raises(PersistenceError) as exc_info:
            PortfolioRecord.from_dict(data)
        assert "shortBio" in str(exc_info.value)

    @pytest.mark.parametrize("age", ["36", 36.5, True, None])
    def test_age_must_be_integer(self, data, age):
        data["age"] = age
        with pytest.raises(PersistenceError):
            PortfolioRecord.from_dict(data)

    def test_skills_must_be_strings(self, data):
        data["skills"] = ["C", 3]
        with pytest.raises(PersistenceError):
            PortfolioRecord.from_dict(data)

    def test_project_entries_must_be_objects(self, data):
        data["projects"] = ["Engine Notes"]
        with pytest.raises(PersistenceError):
            PortfolioRecord.from_dict(data)

    def test_negative_age(self, data):
        data["age"] = -5
        with pytest.raises(PersistenceError):
            PortfolioRecord.from_dict(data)

    @pytest.mark.parametrize("name", ["", "   "])
    def test_blank_name(self, data, name):
        data["name"] = name
        with pytest.raises(PersistenceError):
            PortfolioRecord.from_dict(data)
