"""
Tests for the record validation gate.
"""
import json
import pytest

from registry_agent.agents.validator import VALIDATION_SYSTEM_PROMPT, ValidationGate
from registry_agent.core.exceptions import GateInvocationError, ModelTimeoutError
from registry_agent.utils.json_parsing import JsonExtractor
from tests.fixtures import make_record_data, model_response


@pytest.fixture
def validator(mock_model_router):
    """Provide ValidationGate with mocked completions."""
    return ValidationGate(
        model_router=mock_model_router,
        json_extractor=JsonExtractor(mock_model_router),
        model="validation-model"
    )


@pytest.fixture
def registration_data():
    return json.dumps(make_record_data()["businessEntity"])


@pytest.fixture
def business_data(sample_company):
    return sample_company.model_dump_json(exclude_none=True)


@pytest.mark.asyncio
async def test_valid_match(validator, mock_model_router, registration_data, business_data):
    mock_model_router.generate.return_value = model_response(
        '{"is_valid": true, "entity_number": "1234567-0160"}'
    )

    outcome = await validator.validate_entity(
        registration_data=registration_data,
        business_data=business_data,
        state="Utah"
    )

    assert outcome.is_valid is True
    assert outcome.entity_number == "1234567-0160"

    kwargs = mock_model_router.generate.call_args.kwargs
    assert kwargs["model"] == "validation-model"
    assert kwargs["system_prompt"] == VALIDATION_SYSTEM_PROMPT
    assert kwargs["json_mode"] is True
    assert registration_data in kwargs["prompt"]
    assert business_data in kwargs["prompt"]
    assert "holding companies" in kwargs["prompt"]
    assert "DBA" in kwargs["prompt"]


@pytest.mark.asyncio
async def test_rejected_match(validator, mock_model_router, registration_data, business_data):
    mock_model_router.generate.return_value = model_response(
        '{"is_valid": false, "entity_number": "7654321-0140"}'
    )

    outcome = await validator.validate_entity(registration_data, business_data)

    assert outcome.is_valid is False
    assert outcome.entity_number == "7654321-0140"


@pytest.mark.asyncio
async def test_numeric_entity_number_is_stringified(validator, mock_model_router, registration_data, business_data):
    mock_model_router.generate.return_value = model_response('{"is_valid": true, "entity_number": 9876543}')

    outcome = await validator.validate_entity(registration_data, business_data)

    assert outcome.entity_number == "9876543"


@pytest.mark.asyncio
async def test_missing_fields_are_inconclusive(validator, mock_model_router, registration_data, business_data):
    mock_model_router.generate.return_value = model_response('{"is_valid": "maybe"}')

    outcome = await validator.validate_entity(registration_data, business_data)

    assert outcome.is_valid is None
    assert outcome.entity_number is None


@pytest.mark.asyncio
async def test_remote_failure_raises_gate_error(validator, mock_model_router, registration_data, business_data):
    mock_model_router.generate.side_effect = ModelTimeoutError("timed out")

    with pytest.raises(GateInvocationError) as exc_info:
        await validator.validate_entity(registration_data, business_data)

    assert exc_info.value.gate == "validation"
    assert "timed out" in str(exc_info.value)
