import pytest

from common.rules_engine.errors import PreconditionError
from common.rules_engine.models import OutcomeState, PayloadFormat
from common.rules_engine.rules.feed_core_4000 import FEED_CORE_4000


def _ctx(make_ctx, body):
    return make_ctx(payload=body, fmt=PayloadFormat.JSON)


def test_value_array_passes(make_ctx):
    res = FEED_CORE_4000().evaluate(_ctx(make_ctx, '{"@odata.context": "$metadata#Products", "value": []}'))
    assert res.state == OutcomeState.PASS


def test_missing_value_array_fails(make_ctx):
    res = FEED_CORE_4000().evaluate(_ctx(make_ctx, '{"@odata.context": "$metadata#Products", "value": {}}'))
    assert res.state == OutcomeState.FAIL
    assert '"value": {}' in res.evidence.payload_excerpt


def test_malformed_json_is_a_precondition_error(make_ctx):
    with pytest.raises(PreconditionError):
        FEED_CORE_4000().evaluate(_ctx(make_ctx, '{"value": ['))
