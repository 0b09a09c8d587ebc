"""
Domain models for registry search.

Registry records mirror the camelCase JSON shape the browser agent is asked
to emit; Python code uses the snake_case attribute names.
"""
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class Company(BaseModel):
    """The business whose registry entry is being resolved."""
    model_config = ConfigDict(frozen=True)

    name: str
    address: str | None = None
    website: str | None = None
    category: str | None = None


class RegistryModel(BaseModel):
    """Base for records exchanged with the agent in camelCase JSON."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class EntityInformation(RegistryModel):
    entity_name: str
    entity_number: str
    entity_type: str | None = None
    entity_subtype: str | None = None
    formation_date: str | None = None
    profession: str | None = None
    formation_effective_date: str | None = None
    entity_status: str | None = None
    renew_by_date: str | None = None
    entity_status_details: str | None = None
    last_renewed_date: str | None = None
    status_updated_on: str | None = None
    expiration_date: str | None = None


class RegisteredAgent(RegistryModel):
    name: str | None = None
    registered_agent_type: str | None = None
    street_address: str | None = None
    last_updated: str | None = None


class Principal(RegistryModel):
    title: str | None = None
    name: str | None = None
    address: str | None = None
    last_updated: str | None = None


class AddressInformation(RegistryModel):
    physical_address: str | None = None
    physical_address_updated_date: str | None = None
    mailing_address: str | None = None
    mailing_address_updated_date: str | None = None


class ServiceOfProcessInformation(RegistryModel):
    service_of_process_name: str | None = None
    last_updated: str | None = None
    service_of_process_address: str | None = None


class BusinessEntity(RegistryModel):
    entity_information: EntityInformation
    registered_agent: RegisteredAgent | None = None
    principal_information: list[Principal] = Field(default_factory=list)
    address_information: AddressInformation | None = None
    service_of_process_information: ServiceOfProcessInformation | None = None


class BusinessEntityRecord(RegistryModel):
    """A registry record extracted by the browser agent."""

    business_entity: BusinessEntity

    @property
    def entity_number(self) -> str:
        return self.business_entity.entity_information.entity_number

    @property
    def entity_name(self) -> str:
        return self.business_entity.entity_information.entity_name

    @property
    def principal_names(self) -> list[str]:
        """Non-empty principal names, in listed order."""
        return [
            p.name.strip()
            for p in self.business_entity.principal_information
            if p.name and p.name.strip()
        ]


class SearchCriteria(RegistryModel):
    name: str


class NoResultSentinel(RegistryModel):
    """Returned by the agent when the registry search has no results."""

    search_criteria: SearchCriteria
    no_results: bool


class ClassificationLabel(str, Enum):
    """How a principal name relates to the registered business."""
    INDIVIDUAL = "individual"
    RELATED_ENTITY = "related-entity"
    REGISTRATION_SERVICE = "registration-service"
    UNKNOWN = "unknown"


class ClassificationResult(BaseModel):
    """Classification of one principal name. A missing label is inconclusive."""

    registered_name: str | None = None
    label: ClassificationLabel | None = None


class ValidationOutcome(BaseModel):
    """Whether a registry record matches the target business. None is inconclusive."""

    is_valid: bool | None = None
    entity_number: str | None = None


class SearchState(BaseModel):
    """
    State threaded through one search path.

    Immutable: every transition returns a new state. tested_entities keeps
    insertion order and never shrinks.
    """
    model_config = ConfigDict(frozen=True)

    depth: int = Field(default=0, ge=0)
    tested_entities: tuple[str, ...] = ()

    def descend(self) -> "SearchState":
        """Next attempt with the same exclusion history."""
        return SearchState(depth=self.depth + 1, tested_entities=self.tested_entities)

    def excluding(self, entity_number: str) -> "SearchState":
        """Next attempt with entity_number added to the exclusion history."""
        tested = self.tested_entities
        if entity_number not in tested:
            tested = tested + (entity_number,)
        return SearchState(depth=self.depth + 1, tested_entities=tested)

    def has_tested(self, entity_number: str) -> bool:
        return entity_number in self.tested_entities


class SearchStatus(str, Enum):
    """Terminal outcome of a search path."""
    FOUND = "found"
    NOT_FOUND = "not_found"
    EXHAUSTED = "exhausted"


class SearchDecision(str, Enum):
    """What the orchestrator did after one attempt."""
    ACCEPT = "accept"
    NOT_FOUND = "not_found"
    BRANCH_RELATED = "branch_related"
    RETRY_EXCLUDING = "retry_excluding"


class SearchAttempt(BaseModel):
    """Audit entry for one search attempt."""

    depth: int
    target: str
    entity_number: str | None = None
    related_entity: str | None = None
    is_valid: bool | None = None
    decision: SearchDecision
    timestamp: datetime = Field(default_factory=datetime.now)


class SearchOutcome(BaseModel):
    """Result of a full entity search."""

    status: SearchStatus
    company: Company
    record: BusinessEntityRecord | None = None
    state: SearchState
    attempts: list[SearchAttempt] = Field(default_factory=list)

    @property
    def found(self) -> bool:
        return self.status == SearchStatus.FOUND


class ModelResponse(BaseModel):
    """Response from a language model."""

    content: str
    model: str
    tokens_used: int | None = None
    latency_ms: float | None = None
    cached: bool = False
