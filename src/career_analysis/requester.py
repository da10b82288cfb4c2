"""
This module is the LLM-backed career analysis requester.

It defines the `CareerAnalysisRequester` class, which turns a `UserProfile`
into a validated `CareerAnalysis` by:

1.  **Prompt Construction**: Renders the profile into a single, deterministic
    instruction that spells out the expected JSON schema.
2.  **LLM Invocation**: Makes one synchronous call to the configured model
    (Google Gemini or a local Ollama model) through LangChain. There is no
    retry, streaming or timeout.
3.  **Response Parsing**: Strips an optional Markdown code fence, parses the
    JSON and validates it against the `CareerAnalysis` model.

Every failure surfaces as an `AnalysisGenerationError` carrying one generic
user-facing message; shape mismatches use the `InvalidAnalysisShapeError`
subclass so they can be told apart in logs and tests.
"""

import logging
import os
from typing import Any, Dict, List, Optional

from langchain_core.messages import HumanMessage
from langchain_core.prompts import PromptTemplate
from langchain_core.runnables import Runnable, RunnableLambda
from langchain_google_genai import ChatGoogleGenerativeAI
from langchain_ollama import ChatOllama
from pydantic import BaseModel, Field, ValidationError

from .models import CareerAnalysis, UserProfile
from .utils.constants import (
    GENERATION_FAILED_MESSAGE,
    JOB_POSSIBILITY_TOTAL,
    MISSING_EXPERIENCE_TEXT,
)
from .utils.data_utils import parse_analysis_text
from .utils.prompts import CAREER_ANALYSIS_PROMPT_TEMPLATE

# --- Logger ---
logger = logging.getLogger(__name__)

# --- Default LLM Configuration (used if not in config file) ---
GEMINI_API_KEY = os.environ.get("GOOGLE_API_KEY")
GEMINI_DEFAULT_MODEL_NAME = "gemini-flash-latest"
OLLAMA_BASE_URL = os.environ.get("OLLAMA_BASE_URL")


# =============================================================================
# EXCEPTIONS
# =============================================================================
class AnalysisGenerationError(Exception):
    """Raised when a career analysis could not be produced for any reason."""

    def __init__(self, message: str = GENERATION_FAILED_MESSAGE):
        super().__init__(message)


class InvalidAnalysisShapeError(AnalysisGenerationError):
    """Raised when the model returned JSON that does not match the schema."""


# =============================================================================
# CONFIGURATION MODELS (Pydantic)
# =============================================================================
class GeminiSettings(BaseModel):
    """Settings specific to the Google Gemini provider."""

    model_name: str = GEMINI_DEFAULT_MODEL_NAME


class OllamaSettings(BaseModel):
    """Settings specific to a local Ollama provider."""

    model_name: Optional[str] = None


class LLMConfig(BaseModel):
    """Configuration for the LLM provider and its specific settings."""

    provider: str = Field(
        default="gemini", description="The LLM provider to use ('gemini' or 'ollama')."
    )
    gemini_settings: GeminiSettings = Field(default_factory=GeminiSettings)
    ollama_settings: OllamaSettings = Field(default_factory=OllamaSettings)


# =============================================================================
# PROMPT RENDERING
# =============================================================================
def build_prompt(profile: UserProfile) -> str:
    """
    Renders a user profile into the career analysis instruction.

    Every profile value is inserted verbatim. The selected locations are
    joined with ", " and a missing experience value renders as "None".

    Args:
        profile: The validated user profile.

    Returns:
        The complete prompt string.
    """
    experience = (
        MISSING_EXPERIENCE_TEXT if profile.experience is None else profile.experience
    )
    prompt_template = PromptTemplate.from_template(CAREER_ANALYSIS_PROMPT_TEMPLATE)
    return prompt_template.format(
        target_job=profile.target_job,
        location=profile.location_text,
        education=profile.education,
        skills=profile.skills,
        experience=experience,
    )


# =============================================================================
# MAIN REQUESTER CLASS
# =============================================================================
class CareerAnalysisRequester:
    """
    Requests a structured career analysis for a user profile from an LLM.

    Each call is independent and stateless: there is no caching,
    deduplication or concurrency control.

    Attributes:
        config (LLMConfig): The validated LLM configuration.
    """

    def __init__(self, config: LLMConfig, llm: Optional[Runnable] = None):
        """
        Initializes the requester.

        Args:
            config: The validated LLM configuration.
            llm: An already-built LangChain chat model or runnable. When None,
                one is created from `config`.

        Raises:
            ValueError: If the configured provider is invalid or required keys are missing.
        """
        self.config = config
        self._llm = llm if llm is not None else self._get_llm_instance()
        self._chain = self._create_analysis_chain(self._llm)

    def _get_llm_instance(self) -> Runnable:
        """
        Initializes and returns an instance of the configured LLM via LangChain.

        Returns:
            A LangChain `Runnable` object for the configured LLM.

        Raises:
            ValueError: If the configured provider is invalid or required keys are missing.
        """
        provider = self.config.provider.lower()
        if provider == "gemini":
            if not GEMINI_API_KEY:
                raise ValueError(
                    "GOOGLE_API_KEY environment variable not set for Gemini."
                )
            model_name = self.config.gemini_settings.model_name
            logger.info(f"Initializing LangChain Gemini model: {model_name}")
            return ChatGoogleGenerativeAI(model=model_name)

        elif provider == "ollama":
            model_name = self.config.ollama_settings.model_name
            if not model_name:
                raise ValueError("Ollama provider selected, but no model name is set.")
            logger.info(f"Initializing LangChain Ollama model: {model_name}")
            init_kwargs: Dict[str, Any] = {"model": model_name, "cache": False}
            if OLLAMA_BASE_URL:
                init_kwargs["base_url"] = OLLAMA_BASE_URL
                logger.info(f"  Connecting to Ollama at: {OLLAMA_BASE_URL}")
            return ChatOllama(**init_kwargs)

        else:
            raise ValueError(f"Invalid LLM provider in config: '{provider}'")

    @staticmethod
    def _create_analysis_chain(llm: Runnable) -> Runnable:
        """Wraps the prompt string in a `HumanMessage` and pipes it to the LLM."""

        def _prepare_llm_input(prompt: str) -> List[HumanMessage]:
            return [HumanMessage(content=prompt)]

        return RunnableLambda(_prepare_llm_input) | llm

    @property
    def model_name(self) -> str:
        if self.config.provider.lower() == "ollama":
            return self.config.ollama_settings.model_name or "ollama_model"
        return self.config.gemini_settings.model_name

    def _log_token_usage(self, response_message: Any) -> None:
        """Logs token usage when the provider reports it."""
        response_meta = getattr(response_message, "response_metadata", None) or {}
        usage_data = response_meta.get("token_usage") or getattr(
            response_message, "usage_metadata", None
        )
        if not usage_data:
            return
        input_tokens = usage_data.get("prompt_token_count") or usage_data.get(
            "input_tokens", 0
        )
        output_tokens = usage_data.get("candidates_token_count") or usage_data.get(
            "output_tokens", 0
        )
        total_tokens = usage_data.get("total_token_count") or usage_data.get(
            "total_tokens", input_tokens + output_tokens
        )
        logger.info(
            f"{self.config.provider.capitalize()} token usage ({self.model_name}): "
            f"input={input_tokens}, output={output_tokens}, total={total_tokens}"
        )

    @staticmethod
    def _response_text(response_message: Any) -> str:
        """Extracts the text of a chat model response."""
        content = getattr(response_message, "content", response_message)
        if isinstance(content, list):
            # Multimodal responses are a list of content blocks.
            return "".join(
                block.get("text", "") if isinstance(block, dict) else str(block)
                for block in content
            )
        return str(content)

    def generate_analysis(self, profile: UserProfile) -> CareerAnalysis:
        """
        Produces the analysis payload for a profile, or fails.

        The profile is expected to be validated by the caller already.

        Args:
            profile: The user profile to analyze.

        Returns:
            The validated career analysis.

        Raises:
            AnalysisGenerationError: If the LLM call fails or returns non-JSON text.
            InvalidAnalysisShapeError: If the JSON does not match the expected schema.
        """
        logger.info(f"Requesting career analysis for target job '{profile.target_job}'")
        prompt = build_prompt(profile)

        try:
            response_message = self._chain.invoke(prompt)
        except Exception as e:
            logger.error(f"Error invoking LangChain chain: {e}", exc_info=True)
            raise AnalysisGenerationError() from e

        self._log_token_usage(response_message)
        text = self._response_text(response_message)

        try:
            data = parse_analysis_text(text)
        except ValueError as e:
            logger.error(f"Model response is not a valid JSON object: {e}")
            logger.debug(f"Raw model response (preview): {text[:500]}")
            raise AnalysisGenerationError() from e

        try:
            analysis = CareerAnalysis.model_validate(data)
        except ValidationError as e:
            logger.error(f"Model response does not match the analysis schema:\n{e}")
            raise InvalidAnalysisShapeError() from e

        total = analysis.job_possibility.total
        if total != JOB_POSSIBILITY_TOTAL:
            logger.warning(
                f"Job possibility values sum to {total}, not {JOB_POSSIBILITY_TOTAL}. "
                "Keeping the values as returned."
            )
        return analysis
