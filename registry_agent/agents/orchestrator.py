"""
Entity search orchestrator.

Resolves which registry record belongs to a target business by driving the
browser agent in a depth-first loop:

    search -> parse -> no-result check -> classify principals -> validate
       ^                                                            |
       |   related entity found: search for that entity instead     |
       +---- rejected: search again excluding this entity number ---+

The loop state (depth, tested entity numbers) is an immutable SearchState
passed from attempt to attempt; the search ends on acceptance, on a
no-result response, or when max_depth attempts have been made.
"""
import json
from typing import Any

import structlog
from pydantic import ValidationError
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from registry_agent.agent.environment import BrowserEnvironment
from registry_agent.agent.handlers import DirectProviderHandler
from registry_agent.agent.provider import AgentProvider
from registry_agent.agent.types import RemoteHandler, TaskExecutionRequest, TaskExecutionResult
from registry_agent.agents.classifier import ClassificationGate
from registry_agent.agents.validator import ValidationGate
from registry_agent.config import settings
from registry_agent.core.exceptions import (
    AgentExecutionError,
    GateInvocationError,
    MalformedAgentOutputError,
)
from registry_agent.core.model_router import ModelRouter
from registry_agent.models.domain import (
    BusinessEntityRecord,
    ClassificationLabel,
    Company,
    NoResultSentinel,
    SearchAttempt,
    SearchDecision,
    SearchOutcome,
    SearchState,
    SearchStatus,
)
from registry_agent.utils.json_parsing import JsonExtractor

logger = structlog.get_logger(__name__)

AGENT_INSTRUCTIONS = """You are a helpful assistant that can use a web browser.
You are currently on the following page: {url}.
Do not ask follow up questions, the user will trust your judgement."""

SEARCH_INSTRUCTION = """
Search and extract the business entity information for the company:
{company}

If there are no results, return the following schema and quit the execution:
{no_result_schema}

Else, continue with the following instructions:

When navigating to the entity result, make sure to click directly on the text of the entity name.

Do not select an entity if it has already been tested. The tested entity numbers are:
{tested_entities}

Quit the execution no matter if a valid result was found or not.

Respond in this JSON schema format:
{record_schema}

Do not include any other text, formatting or markdown in your output. Do not include ``` or ```json in your response. Only the JSON object itself.
"""


def parse_search_result(data: Any, raw: str | None) -> BusinessEntityRecord | NoResultSentinel:
    """
    Interpret extracted agent output as exactly one of the two expected shapes.

    Raises:
        MalformedAgentOutputError: Output is neither shape
    """
    if not isinstance(data, dict):
        raise MalformedAgentOutputError("Agent output contained no JSON object", raw)

    if data.get("noResults") is True:
        try:
            return NoResultSentinel.model_validate(data)
        except ValidationError:
            # Search criteria are informational; the flag is what matters
            return NoResultSentinel(search_criteria={"name": ""}, no_results=True)

    try:
        return BusinessEntityRecord.model_validate(data)
    except ValidationError as e:
        raise MalformedAgentOutputError(
            f"Agent output is not a business entity record ({e.error_count()} errors)",
            raw
        ) from e


class EntitySearchOrchestrator:
    """
    Runs one search tree against a single browser environment.

    The environment is used exclusively by this orchestrator for the duration
    of search(); concurrent searches need separate environments.
    """

    def __init__(
        self,
        environment: BrowserEnvironment,
        model_router: ModelRouter | None = None,
        agent_provider: AgentProvider | None = None,
        classifier: ClassificationGate | None = None,
        validator: ValidationGate | None = None,
        json_extractor: JsonExtractor | None = None,
        model_name: str | None = None,
        remote_handler: RemoteHandler | None = None,
        max_depth: int | None = None,
        max_attempts: int | None = None,
        retry_backoff_seconds: float | None = None
    ):
        """
        Initialize orchestrator with dependencies.

        Args:
            environment: Browser the agent operates
            model_router: Shared router for the oracles (creates default if None)
            agent_provider: Factory for agent clients
            classifier: Principal classification gate
            validator: Record validation gate
            json_extractor: Parser for agent output
            model_name: Computer-use model (defaults to settings.agent_model)
            remote_handler: Proxy for provider calls, passed to every client.
                Defaults to one DirectProviderHandler owned and closed by this
                orchestrator.
            max_depth: Maximum attempts along one search path
            max_attempts: Tries per task execution before its error propagates
            retry_backoff_seconds: Exponential backoff multiplier between tries
        """
        self.environment = environment
        self.model_router = model_router or ModelRouter()
        self.agent_provider = agent_provider or AgentProvider()
        self.json_extractor = json_extractor or JsonExtractor(self.model_router)
        self.classifier = classifier or ClassificationGate(self.model_router, self.json_extractor)
        self.validator = validator or ValidationGate(self.model_router, self.json_extractor)
        self.model_name = model_name or settings.agent_model
        self.remote_handler = remote_handler or DirectProviderHandler()
        self._owns_handler = remote_handler is None
        self.max_depth = max_depth or settings.max_search_depth
        self.max_attempts = max_attempts or settings.agent_max_attempts
        self.retry_backoff_seconds = (
            settings.retry_backoff_seconds
            if retry_backoff_seconds is None
            else retry_backoff_seconds
        )
        self.logger = logger.bind(component="entity_search")

        # Fails fast on an unsupported model before any browsing
        self.agent_type = self.agent_provider.get_agent_provider(self.model_name)

    async def __aenter__(self) -> "EntitySearchOrchestrator":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Release provider connections opened by the default handler."""
        if self._owns_handler:
            await self.remote_handler.aclose()

    async def search(self, company: Company, state: SearchState | None = None) -> SearchOutcome:
        """
        Resolve the registry record for company.

        Returns:
            SearchOutcome with status found, not_found or exhausted

        Raises:
            AgentExecutionError: Task execution still failing after max_attempts
            MalformedAgentOutputError: Agent output was neither expected shape
            MalformedLlmJsonError: JSON fallback returned unparsable output
            ConfigurationError: Unknown model or missing environment
        """
        state = state or SearchState()
        target = company
        attempts: list[SearchAttempt] = []

        self.logger.info("search_started", company=company.name, max_depth=self.max_depth)

        while state.depth < self.max_depth:
            attempt_log = self.logger.bind(depth=state.depth, target=target.name)

            # 1-2. Search and parse
            result = await self._run_search_task(target, state)
            parsed = parse_search_result(
                await self.json_extractor.extract(result.message),
                result.message
            )

            # 3. No results for this target
            if isinstance(parsed, NoResultSentinel):
                attempt_log.info("search_no_results")
                attempts.append(SearchAttempt(
                    depth=state.depth,
                    target=target.name,
                    decision=SearchDecision.NOT_FOUND
                ))
                return SearchOutcome(
                    status=SearchStatus.NOT_FOUND,
                    company=company,
                    state=state,
                    attempts=attempts
                )

            entity_number = parsed.entity_number
            if state.has_tested(entity_number):
                # The agent ignored the exclusion list; never accept a re-selection
                attempt_log.warning("search_reselected_tested_entity", entity_number=entity_number)
                attempts.append(SearchAttempt(
                    depth=state.depth,
                    target=target.name,
                    entity_number=entity_number,
                    decision=SearchDecision.RETRY_EXCLUDING
                ))
                state = state.descend()
                continue

            # 4-5. Gates
            related_entity = await self._detect_related_entity(parsed)
            is_valid = await self._validate(parsed, target)

            # 6. Decide
            if is_valid and not related_entity:
                decision = SearchDecision.ACCEPT
            elif related_entity:
                decision = SearchDecision.BRANCH_RELATED
            else:
                decision = SearchDecision.RETRY_EXCLUDING

            attempts.append(SearchAttempt(
                depth=state.depth,
                target=target.name,
                entity_number=entity_number,
                related_entity=related_entity,
                is_valid=is_valid,
                decision=decision
            ))
            attempt_log.info(
                "search_attempt_completed",
                entity_number=entity_number,
                related_entity=related_entity,
                is_valid=is_valid,
                decision=decision.value
            )

            if decision == SearchDecision.ACCEPT:
                self.logger.info(
                    "search_completed",
                    company=company.name,
                    entity_number=entity_number,
                    depth=state.depth
                )
                return SearchOutcome(
                    status=SearchStatus.FOUND,
                    company=company,
                    record=parsed,
                    state=state,
                    attempts=attempts
                )
            elif decision == SearchDecision.BRANCH_RELATED:
                # New target, same exclusion history
                target = Company(name=related_entity, address=target.address)
                state = state.descend()
            else:
                state = state.excluding(entity_number)

        self.logger.warning(
            "search_exhausted",
            company=company.name,
            max_depth=self.max_depth,
            tested_entities=list(state.tested_entities)
        )
        return SearchOutcome(
            status=SearchStatus.EXHAUSTED,
            company=company,
            state=state,
            attempts=attempts
        )

    def build_instruction(self, company: Company, state: SearchState) -> str:
        """Agent instruction for one attempt, with both output schemas inline."""
        return SEARCH_INSTRUCTION.format(
            company=company.model_dump_json(exclude_none=True),
            no_result_schema=json.dumps(NoResultSentinel.model_json_schema(by_alias=True)),
            tested_entities=json.dumps(list(state.tested_entities)),
            record_schema=json.dumps(BusinessEntityRecord.model_json_schema(by_alias=True))
        )

    async def _run_search_task(self, company: Company, state: SearchState) -> TaskExecutionResult:
        """Navigate to the registry and run one agent task, retrying transport failures."""
        request = TaskExecutionRequest(
            instruction=self.build_instruction(company, state),
            wait_between_actions=settings.wait_between_actions_ms,
            wait_between_steps=settings.wait_between_steps_ms,
            max_steps=settings.max_steps
        )

        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential(multiplier=self.retry_backoff_seconds, max=30),
            retry=retry_if_exception_type(AgentExecutionError),
            reraise=True
        ):
            with attempt:
                if attempt.retry_state.attempt_number > 1:
                    self.logger.warning(
                        "search_task_retry",
                        attempt=attempt.retry_state.attempt_number
                    )
                await self.environment.navigate_to(settings.registry_url)

                client = self.agent_provider.get_client(
                    self.model_name,
                    client_options=self._client_options(),
                    user_instructions=AGENT_INSTRUCTIONS.format(
                        url=await self.environment.current_url()
                    ),
                    remote_handler=self.remote_handler
                )
                client.set_environment(self.environment)
                return await client.execute(request)

    def _client_options(self) -> dict[str, Any]:
        api_key = settings.api_key_for(self.agent_type.value)
        return {"api_key": api_key} if api_key else {}

    async def _detect_related_entity(self, record: BusinessEntityRecord) -> str | None:
        """First principal classified as a related entity, scanning in listed order."""
        entity_data = record.business_entity.entity_information.model_dump_json(by_alias=True)

        for name in record.principal_names:
            try:
                classification = await self.classifier.classify_entity(
                    registered_name=name,
                    entity_data=entity_data
                )
            except GateInvocationError as e:
                self.logger.warning("classification_inconclusive", name=name, error=str(e))
                continue

            if classification.label == ClassificationLabel.RELATED_ENTITY:
                return name
        return None

    async def _validate(self, record: BusinessEntityRecord, company: Company) -> bool:
        try:
            outcome = await self.validator.validate_entity(
                registration_data=record.business_entity.model_dump_json(by_alias=True),
                business_data=company.model_dump_json(exclude_none=True)
            )
        except GateInvocationError as e:
            self.logger.warning("validation_inconclusive", error=str(e))
            return False
        return outcome.is_valid is True
