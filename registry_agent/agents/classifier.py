"""
Classification gate: decides whether a principal listed on a registry record
is a person, the same business under another name, or a registration service.
"""
import re

import structlog

from registry_agent.config import settings
from registry_agent.core.exceptions import GateInvocationError, ModelError
from registry_agent.core.model_router import ModelRouter
from registry_agent.models.domain import ClassificationLabel, ClassificationResult
from registry_agent.utils.json_parsing import JsonExtractor, safe_get_field

logger = structlog.get_logger(__name__)

LEGAL_SUFFIXES = frozenset({
    "INC", "INCORPORATED", "LLC", "LLP", "LP", "LTD", "LIMITED", "CORP",
    "CORPORATION", "CO", "COMPANY", "PC", "PLLC", "PLC", "NA", "DBA",
})

BUSINESS_KEYWORDS = LEGAL_SUFFIXES | frozenset({
    "HOLDINGS", "HOLDING", "GROUP", "SERVICES", "SERVICE", "TRUST", "PARTNERS",
    "ENTERPRISES", "INVESTMENTS", "CAPITAL", "MANAGEMENT", "VENTURES",
    "SOLUTIONS", "TECHNOLOGIES", "TECHNOLOGY", "AGENTS", "AGENT", "REGISTERED",
    "CORPORATE", "FUND", "ASSOCIATES", "INTERNATIONAL", "SYSTEMS",
    "PROPERTIES", "FOUNDATION", "BANK", "SOFTWARE", "CONSULTING", "THE", "OF",
})

COMMON_GIVEN_NAMES = frozenset({
    "JAMES", "JOHN", "ROBERT", "MICHAEL", "WILLIAM", "DAVID", "RICHARD",
    "JOSEPH", "THOMAS", "CHARLES", "CHRISTOPHER", "DANIEL", "MATTHEW",
    "ANTHONY", "MARK", "DONALD", "STEVEN", "STEVE", "PAUL", "ANDREW", "JOSHUA",
    "KENNETH", "KEVIN", "BRIAN", "GEORGE", "TIMOTHY", "RONALD", "EDWARD",
    "JASON", "JEFFREY", "RYAN", "JACOB", "GARY", "NICHOLAS", "ERIC",
    "JONATHAN", "STEPHEN", "LARRY", "JUSTIN", "SCOTT", "BRANDON", "BENJAMIN",
    "SAMUEL", "GREGORY", "FRANK", "ALEXANDER", "RAYMOND", "PATRICK", "JACK",
    "DENNIS", "JERRY", "TYLER", "AARON", "ADAM", "NATHAN", "HENRY", "PETER",
    "ZACHARY", "KYLE", "JEREMY", "ETHAN", "CHRIS", "MIKE", "DAN", "TOM",
    "BOB", "JIM", "JOE", "MARY", "PATRICIA", "JENNIFER", "LINDA", "ELIZABETH",
    "BARBARA", "SUSAN", "JESSICA", "SARAH", "KAREN", "LISA", "NANCY",
    "BETTY", "MARGARET", "SANDRA", "ASHLEY", "KIMBERLY", "EMILY", "DONNA",
    "MICHELLE", "CAROL", "AMANDA", "DOROTHY", "MELISSA", "DEBORAH",
    "STEPHANIE", "REBECCA", "SHARON", "LAURA", "CYNTHIA", "KATHLEEN", "AMY",
    "ANGELA", "SHIRLEY", "ANNA", "BRENDA", "PAMELA", "EMMA", "NICOLE",
    "HELEN", "SAMANTHA", "KATHERINE", "CHRISTINE", "DEBRA", "RACHEL",
    "CAROLYN", "JANET", "CATHERINE", "MARIA", "HEATHER", "DIANE", "JULIE",
    "JOYCE", "VICTORIA", "KELLY", "CHRISTINA", "LAUREN", "JOAN", "EVELYN",
    "OLIVIA", "JUDITH", "MEGAN", "CHERYL", "ANDREA", "HANNAH", "JACQUELINE",
    "MARTHA", "GLORIA", "SARA", "JANICE", "JULIA", "GRACE", "JOSE", "JUAN",
    "CARLOS", "LUIS", "JORGE", "ANA", "ROSA", "WEI", "LI", "MOHAMMED",
    "MUHAMMAD", "AHMED", "ALI", "RAJ", "PRIYA",
})

NAME_TOKEN_PATTERN = re.compile(r"^[A-Za-z][A-Za-z'\-]*\.?$")


def _normalize_token(token: str) -> str:
    return token.upper().replace(".", "").strip(",;")


def is_incomplete_name(name: str) -> bool:
    """
    True for names that carry no identity, e.g. a bare "INC".

    Examples:
        >>> is_incomplete_name("INC")
        True
        >>> is_incomplete_name("Acme Holdings")
        False
    """
    tokens = [_normalize_token(t) for t in name.split()]
    tokens = [t for t in tokens if t]
    if not tokens or not any(c.isalpha() for c in name):
        return True
    return all(t in LEGAL_SUFFIXES for t in tokens)


def is_individual_name(name: str) -> bool:
    """
    True only for the registry's "LAST, FIRST [M]" person format, where the
    part after the comma is a common given name plus an optional initial.

    Any other name, including ones that merely start with a given name, needs
    web evidence: "Ryan Homes" is a business.

    Examples:
        >>> is_individual_name("SMITH, JOHN A")
        True
        >>> is_individual_name("John Smith")
        False
        >>> is_individual_name("Acme Holdings")
        False
    """
    if name.count(",") != 1:
        return False
    last, _, first = name.partition(",")
    last_tokens = last.split()
    first_tokens = first.split()

    if not 1 <= len(last_tokens) <= 2 or not 1 <= len(first_tokens) <= 2:
        return False
    if not all(NAME_TOKEN_PATTERN.match(t) for t in last_tokens + first_tokens):
        return False
    if any(_normalize_token(t) in BUSINESS_KEYWORDS for t in last_tokens + first_tokens):
        return False
    if _normalize_token(first_tokens[0]) not in COMMON_GIVEN_NAMES:
        return False
    # Optional middle initial
    return len(first_tokens) == 1 or len(_normalize_token(first_tokens[1])) == 1


CLASSIFICATION_PROMPT = """
Provided below are the following:
- State business registration entity information for the state of {state}
- A registered name listed on that entity

Decide whether the registered name is an individual, the same business operating under a related entity, or a separate registration service company.
- Use one of these labels: "individual", "related-entity", "registration-service".
- Search the web for evidence supporting the label. Make sure the results you rely on are about the registered name.
- If the registered name is incomplete (e.g. "INC"), use the label "unknown".
- If the registered name is clearly an individual's name (a common personal name), do not rely on web results; use the label "individual".
- If the web results are insufficient or unrelated, and the name cannot be distinguished from a registration service, use the label "unknown".

State Registration Entity Data:
{entity_data}

Entity registered name:
{registered_name}

Respond strictly in the following json format and do not include script tags:

{{
  "registered_name": "<registered name for the entity>",
  "label": "<one of the classification labels above>"
}}
"""


class ClassificationGate:
    """
    Labels one principal name per call.

    "LAST, FIRST" person names and incomplete fragments are labeled locally;
    everything else goes to a web-search model. A result with label None is inconclusive.
    """

    def __init__(
        self,
        model_router: ModelRouter,
        json_extractor: JsonExtractor | None = None,
        model: str | None = None
    ):
        self.model_router = model_router
        self.json_extractor = json_extractor or JsonExtractor(model_router)
        self.model = model or settings.classification_model
        self.logger = logger.bind(gate="classification")

    async def classify_entity(
        self,
        registered_name: str,
        entity_data: str,
        state: str | None = None
    ) -> ClassificationResult:
        """
        Classify registered_name in the context of a registry record.

        Args:
            registered_name: Principal name from the record
            entity_data: Serialized entity information of the record
            state: Registry state (defaults to settings.registry_state)

        Raises:
            GateInvocationError: The web-search call failed
            MalformedLlmJsonError: The JSON fallback returned unparsable output
        """
        if is_incomplete_name(registered_name):
            self.logger.info("entity_classified", name=registered_name, label="unknown", source="heuristic")
            return ClassificationResult(
                registered_name=registered_name,
                label=ClassificationLabel.UNKNOWN
            )

        if is_individual_name(registered_name):
            self.logger.info("entity_classified", name=registered_name, label="individual", source="heuristic")
            return ClassificationResult(
                registered_name=registered_name,
                label=ClassificationLabel.INDIVIDUAL
            )

        prompt = CLASSIFICATION_PROMPT.format(
            state=state or settings.registry_state,
            entity_data=entity_data,
            registered_name=registered_name
        )

        try:
            response = await self.model_router.web_search(prompt=prompt, model=self.model)
        except ModelError as e:
            self.logger.error("classification_failed", name=registered_name, error=str(e))
            raise GateInvocationError("classification", str(e), original_error=e) from e

        data = await self.json_extractor.extract(response.content)

        label = None
        raw_label = safe_get_field(data, "label", None, str)
        if raw_label:
            try:
                label = ClassificationLabel(raw_label.strip().lower())
            except ValueError:
                self.logger.warning("classification_label_unrecognized", label=raw_label)

        result = ClassificationResult(
            registered_name=safe_get_field(data, "registered_name", registered_name, str),
            label=label
        )
        self.logger.info(
            "entity_classified",
            name=registered_name,
            label=label.value if label else None,
            source="web_search"
        )
        return result
