"""
Validation gate: confirms a registry record belongs to the target business.
"""
import structlog

from registry_agent.config import settings
from registry_agent.core.exceptions import GateInvocationError, ModelError
from registry_agent.core.model_router import ModelRouter
from registry_agent.models.domain import ValidationOutcome
from registry_agent.utils.json_parsing import JsonExtractor, safe_get_field

logger = structlog.get_logger(__name__)

VALIDATION_SYSTEM_PROMPT = (
    "You are an AI assistant that helps identify the correct business entity "
    "for a given company."
)

VALIDATION_PROMPT = """
Provided below are business registration results for the state of {state}, and the business information that was used to query for them.
Compare the two and decide whether the registration data accurately matches the business.

Validation considerations:
- Prefer an entity with the exact company name, but allow some slack if the company otherwise matches.
- Do not match holding companies, subsidiary investment companies, or parent companies.
- Allow DBA (doing business as) registrations.
- Aim for an exact address match, but allow minor differences such as building or suite numbers.
- Consider whether the industry/category is a likely match.
- Use any other details to validate the match as needed.

State Registration Data:
{registration_data}

Business Data:
{business_data}

Respond strictly in the following json format and do not include script tags:
{{
  "is_valid": <true | false>,
  "entity_number": "<state registration entity number>"
}}
"""


class ValidationGate:
    """One completion call per record. Missing fields mean inconclusive."""

    def __init__(
        self,
        model_router: ModelRouter,
        json_extractor: JsonExtractor | None = None,
        model: str | None = None
    ):
        self.model_router = model_router
        self.json_extractor = json_extractor or JsonExtractor(model_router)
        self.model = model or settings.validation_model
        self.logger = logger.bind(gate="validation")

    async def validate_entity(
        self,
        registration_data: str,
        business_data: str,
        state: str | None = None
    ) -> ValidationOutcome:
        """
        Validate serialized registration data against serialized business data.

        Raises:
            GateInvocationError: The completion call failed
            MalformedLlmJsonError: The JSON fallback returned unparsable output
        """
        prompt = VALIDATION_PROMPT.format(
            state=state or settings.registry_state,
            registration_data=registration_data,
            business_data=business_data
        )

        try:
            response = await self.model_router.generate(
                prompt=prompt,
                model=self.model,
                system_prompt=VALIDATION_SYSTEM_PROMPT,
                json_mode=True
            )
        except ModelError as e:
            self.logger.error("validation_failed", error=str(e))
            raise GateInvocationError("validation", str(e), original_error=e) from e

        data = await self.json_extractor.extract(response.content)

        entity_number = safe_get_field(data, "entity_number")
        outcome = ValidationOutcome(
            is_valid=safe_get_field(data, "is_valid", None, bool),
            entity_number=str(entity_number) if entity_number not in (None, "") else None
        )
        self.logger.info(
            "entity_validated",
            is_valid=outcome.is_valid,
            entity_number=outcome.entity_number
        )
        return outcome
