"""Search-grounded generation backend.

Both pipeline stages talk to the model through a SearchBackend: send a
natural-language instruction plus a JSON-schema constraint, get back raw
text and the citations the search grounding attached to it.

Architecture:
    - GeminiSearchBackend runs a PydanticAI agent per request
    - Output type is plain text; JSON extraction/validation happens in the
      pipeline so that malformed payloads surface as typed errors
    - WebSearchTool provides Google Search grounding on Gemini
    - Grounding chunks arrive as BuiltinToolReturnPart content and are mapped
      to citations of the form {"web": {"title": ..., "uri": ...}}

Tests substitute any object with a matching ``generate`` coroutine.
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Protocol, Sequence

from pydantic_ai import Agent, UsageLimits
from pydantic_ai.exceptions import AgentRunError
from pydantic_ai.messages import BuiltinToolReturnPart, ModelMessage, ModelResponse
from pydantic_ai.usage import RunUsage

from config import Config
from errors import BackendError, ConfigurationError

logger = logging.getLogger(__name__)

WEB_SEARCH_TOOL = "web_search"


@dataclass
class StageRequest:
    """One generation request issued by a pipeline stage.

    Attributes:
        stage: Stage name ('discovery' or 'writing')
        model: PydanticAI model string for this stage
        instructions: System-level instructions (role, rules, language)
        prompt: User prompt with the task and any embedded data
        output_schema: JSON schema the response must conform to
        use_search: Whether the search grounding tool may be used
    """

    stage: str
    model: str
    instructions: str
    prompt: str
    output_schema: dict[str, Any] = field(default_factory=dict)
    use_search: bool = True


@dataclass
class GroundedResponse:
    """Raw backend answer for one request.

    Attributes:
        text: Raw response text, expected to contain one JSON object
        citations: Grounding chunks, each optionally carrying a "web" entry
        input_tokens: Prompt tokens consumed
        output_tokens: Completion tokens produced
    """

    text: str
    citations: list[dict[str, Any]] = field(default_factory=list)
    input_tokens: int = 0
    output_tokens: int = 0


class SearchBackend(Protocol):
    """Anything that can answer a StageRequest."""

    async def generate(self, request: StageRequest) -> GroundedResponse: ...


def render_schema_instructions(schema: dict[str, Any]) -> str:
    """Build the output-format instruction block for a JSON schema."""
    return (
        "## Output Format\n"
        "Respond with a single JSON object and nothing else. "
        "It must conform to this JSON schema:\n"
        f"{json.dumps(schema, ensure_ascii=False, indent=2)}"
    )


def citations_from_messages(messages: Sequence[ModelMessage]) -> list[dict[str, Any]]:
    """Collect web-search grounding chunks from an agent run's messages.

    Args:
        messages: Messages produced by the run (requests and responses)

    Returns:
        Citations in the order the model reported them
    """
    citations: list[dict[str, Any]] = []
    for message in messages:
        if not isinstance(message, ModelResponse):
            continue
        for part in message.parts:
            if not isinstance(part, BuiltinToolReturnPart) or part.tool_name != WEB_SEARCH_TOOL:
                continue
            content = part.content
            if not isinstance(content, list):
                continue
            for item in content:
                if not isinstance(item, dict):
                    continue
                citations.append(item if "web" in item else {"web": item})
    return citations


def _run_usage(result: Any) -> RunUsage:
    """Token usage of a finished run (a method on older 1.x releases, a property later)."""
    usage = result.usage
    if not isinstance(usage, RunUsage):
        usage = usage()
    return usage


def _create_model(model_str: str, api_key: str):
    """Create a PydanticAI model instance bound to the configured API key.

    Google (Gemini API) models get an explicit provider so the key comes from
    Config rather than ambient environment; other model strings pass through.
    """
    if model_str.startswith("google-gla:"):
        from pydantic_ai.models.google import GoogleModel
        from pydantic_ai.providers.google import GoogleProvider

        model_name = model_str.split(":", 1)[1]
        return GoogleModel(model_name, provider=GoogleProvider(api_key=api_key))
    return model_str


def _create_agent(model: Any, instructions: str, use_search: bool) -> Agent[None, str]:
    """Create the underlying PydanticAI agent for one stage request.

    The agent is configured with:
    - Plain text output (the pipeline parses and validates the JSON)
    - WebSearchTool: Google Search grounding, when the stage allows it
    - No custom function tools (incompatible with built-in tools on Google)
    """
    if not use_search:
        return Agent(model, output_type=str, instructions=instructions)

    from pydantic_ai import WebSearchTool

    return Agent(
        model,
        output_type=str,
        instructions=instructions,
        builtin_tools=[WebSearchTool()],  # Google Search grounding
    )


class GeminiSearchBackend:
    """Gemini with Google Search grounding, driven through PydanticAI.

    A single attempt is made per request; errors are wrapped in BackendError
    and propagate to the pipeline.

    Example:
        >>> backend = GeminiSearchBackend(config)
        >>> response = await backend.generate(request)
        >>> response.citations[0]["web"]["uri"]
        'https://...'
    """

    def __init__(self, config: Config):
        """Initialize the backend.

        Args:
            config: Application configuration with the Gemini API key

        Raises:
            ConfigurationError: If GEMINI_API_KEY is not configured
        """
        if not config.gemini_api_key:
            raise ConfigurationError("GEMINI_API_KEY configuration missing")
        self.config = config
        self._models: dict[str, Any] = {}

    def _model(self, model_str: str) -> Any:
        if model_str not in self._models:
            self._models[model_str] = _create_model(model_str, self.config.gemini_api_key)
        return self._models[model_str]

    async def generate(self, request: StageRequest) -> GroundedResponse:
        """Run one grounded generation request.

        Args:
            request: Stage request with instructions, prompt and schema

        Returns:
            GroundedResponse with raw text, citations and token usage

        Raises:
            BackendError: If the model call fails
        """
        instructions = request.instructions
        if request.output_schema:
            instructions = f"{instructions}\n\n{render_schema_instructions(request.output_schema)}"

        agent = _create_agent(self._model(request.model), instructions, request.use_search)
        try:
            result = await agent.run(
                request.prompt,
                usage_limits=UsageLimits(request_limit=3),
            )
        except AgentRunError as e:
            raise BackendError(f"Model request failed ({type(e).__name__}): {e}", stage=request.stage) from e

        usage = _run_usage(result)
        citations = citations_from_messages(result.new_messages())
        logger.debug(
            "Backend response | stage=%s model=%s chars=%d citations=%d",
            request.stage,
            request.model,
            len(result.output or ""),
            len(citations),
        )
        return GroundedResponse(
            text=result.output or "",
            citations=citations,
            input_tokens=usage.input_tokens or 0,
            output_tokens=usage.output_tokens or 0,
        )
