from unittest.mock import AsyncMock

import pytest

from form2chat.engine import ChatEngine
from form2chat.forms import FormStore, parse_form
from form2chat.phrasing import FixedPhrasing

from helpers.mock_repo import MockRepository
from helpers.sample_forms import CANDIDATE_FORM, REFS_FORM


@pytest.fixture
def refs_form():
    return parse_form(REFS_FORM)


@pytest.fixture
def candidate_form():
    return parse_form(CANDIDATE_FORM)


@pytest.fixture
def forms(refs_form, candidate_form):
    store = FormStore(form_dir=".")
    store.add(refs_form)
    store.add(candidate_form)
    return store


@pytest.fixture
def mock_repo():
    """Fresh MockRepository for each test."""
    return MockRepository()


@pytest.fixture
def engine(forms, mock_repo):
    """ChatEngine with mocked repository and a fixed acknowledgement."""
    eng = ChatEngine(forms, phrasing=FixedPhrasing("OK."))
    eng._repo = mock_repo
    return eng


@pytest.fixture
def mock_db():
    """AsyncMock standing in for AsyncSession — flush/commit are no-ops."""
    return AsyncMock()
