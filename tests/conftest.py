import json
import os

import pytest
from langchain_core.language_models.fake_chat_models import FakeListChatModel

from src.career_analysis.models import CareerAnalysis, UserProfile
from src.career_analysis.requester import CareerAnalysisRequester, LLMConfig
from src.report_store.store import LocalReportStore

TESTS_DIR = os.path.dirname(os.path.abspath(__file__))


@pytest.fixture
def sample_payload():
    """The camelCase analysis payload a well-behaved model would return."""
    with open(os.path.join(TESTS_DIR, "sample_analysis.json"), "r", encoding="utf-8") as f:
        return json.load(f)


@pytest.fixture
def sample_analysis(sample_payload):
    return CareerAnalysis.model_validate(sample_payload)


@pytest.fixture
def profile():
    return UserProfile(
        target_job="Data Scientist",
        location=["Bangladesh"],
        education="Honours",
        skills="Python, SQL",
        experience=2,
    )


@pytest.fixture
def make_requester():
    """Builds a requester whose LLM replies with the given responses in order."""

    def _make(*responses: str) -> CareerAnalysisRequester:
        llm = FakeListChatModel(responses=list(responses))
        return CareerAnalysisRequester(LLMConfig(), llm=llm)

    return _make


@pytest.fixture
def local_store(tmp_path):
    return LocalReportStore(str(tmp_path / "reports"))
