import pytest

from todo_rpc.dispatcher import RequestDispatcher
from todo_rpc.errors import ErrorCode, RpcError
from todo_rpc.methods import build_registry
from todo_rpc.registry import CallContext, MethodDescriptor, MethodName, MethodRegistry
from todo_rpc.repositories import InMemoryItemRepository
from todo_rpc.result import Ok


class ExplodingRepository(InMemoryItemRepository):
    def list(self):
        raise RuntimeError("database is on fire: secret detail")


@pytest.fixture
def repo():
    return InMemoryItemRepository()


@pytest.fixture
def dispatcher(repo):
    return RequestDispatcher(build_registry(repo, "svc", "test service"))


def envelope(method, params=None, id_=1, **extra):
    body = {"jsonrpc": "2.0", "method": method, "id": id_, **extra}
    if params is not None:
        body["params"] = params
    return body


class TestParseErrors:
    @pytest.mark.parametrize("raw", [b"", b"{", b"\xff\xfe", b"NaN", b'{"a": Infinity}'])
    def test_undecodable_bodies(self, dispatcher, raw):
        res = dispatcher.dispatch_raw(raw)
        assert res["error"]["code"] == ErrorCode.PARSE_ERROR
        assert res["id"] is None
        assert "result" not in res

    def test_valid_body_is_dispatched(self, dispatcher):
        res = dispatcher.dispatch_raw(b'{"jsonrpc": "2.0", "method": "item.list", "id": 9}')
        assert res == {"jsonrpc": "2.0", "result": [], "id": 9}

    def test_deeply_nested_body_is_parse_error(self, dispatcher):
        depth = 100_000
        res = dispatcher.dispatch_raw(b"[" * depth + b"]" * depth)
        assert res == {
            "jsonrpc": "2.0",
            "error": {"code": ErrorCode.PARSE_ERROR, "message": "Parse error: Invalid JSON was received by the server."},
            "id": None,
        }


class TestEnvelopeValidation:
    @pytest.mark.parametrize(
        "payload",
        [
            {"hello": "world"},
            [],
            "item.list",
            42,
            None,
            {"jsonrpc": "2.0", "id": 1},
            {"jsonrpc": "2.0", "method": ["item.list"], "id": 1},
            {"jsonrpc": "1.0", "method": "item.list", "id": 1},
            {"method": "item.list", "id": 1},
            {"jsonrpc": "2.0", "method": "item.list", "params": "x", "id": 1},
            {"jsonrpc": "2.0", "method": "item.list", "id": {"nested": 1}},
            {"jsonrpc": "2.0", "method": "item.list", "id": True},
        ],
    )
    def test_invalid_request(self, dispatcher, payload):
        res = dispatcher.dispatch(payload)
        assert res["error"]["code"] == ErrorCode.INVALID_REQUEST
        assert res["id"] is None

    def test_invalid_request_checked_before_method_lookup(self, dispatcher):
        res = dispatcher.dispatch({"jsonrpc": "2.0", "method": "no.such", "params": 3, "id": 1})
        assert res["error"]["code"] == ErrorCode.INVALID_REQUEST


class TestRouting:
    def test_method_not_found_preserves_id(self, dispatcher):
        res = dispatcher.dispatch(envelope("no.such", id_="req-7"))
        assert res["error"]["code"] == ErrorCode.METHOD_NOT_FOUND
        assert res["id"] == "req-7"

    def test_success_envelope_has_no_error(self, dispatcher):
        res = dispatcher.dispatch(envelope("item.add", {"text": "x"}, id_=3.5))
        assert set(res) == {"jsonrpc", "result", "id"}
        assert res["id"] == 3.5

    def test_handler_errors_pass_through(self, dispatcher):
        res = dispatcher.dispatch(envelope("item.remove", {"id": 404}))
        assert res["error"] == {"code": 1001, "message": "Item with ID 404 not found"}

    def test_invalid_params_carry_validation_detail(self, dispatcher):
        res = dispatcher.dispatch(envelope("item.add", {"text": 1}))
        assert res["error"]["code"] == ErrorCode.INVALID_PARAMS
        assert isinstance(res["error"]["data"], list)

    def test_identity_and_params_reach_handler(self):
        seen = []

        def spy(params, ctx):
            seen.append((params, ctx))
            return Ok("done")

        registry = MethodRegistry(
            "svc",
            "d",
            [MethodDescriptor(name=m, handler=spy, description="") for m in MethodName if m is not MethodName.SERVICE_DISCOVER],
        )
        res = RequestDispatcher(registry).dispatch(
            envelope("item.add", [1, 2], id_=5), CallContext(identity={"id": 1, "username": "u"})
        )
        assert res["result"] == "done"
        params, ctx = seen[0]
        assert params == [1, 2]
        assert ctx.identity == {"id": 1, "username": "u"}
        assert ctx.request_id == 5


class TestFaults:
    def test_unexpected_exception_becomes_internal_error(self):
        dispatcher = RequestDispatcher(build_registry(ExplodingRepository(), "svc", "d"))
        res = dispatcher.dispatch(envelope("item.list", id_=11))
        assert res["error"]["code"] == ErrorCode.INTERNAL_ERROR
        assert res["id"] == 11
        assert "fire" not in str(res)
        assert "data" not in res["error"]


class TestNotifications:
    def test_notification_runs_handler_without_response(self, dispatcher, repo):
        assert dispatcher.dispatch({"jsonrpc": "2.0", "method": "item.add", "params": {"text": "n"}}) is None
        assert [i["text"] for i in repo.list()] == ["n"]

    def test_null_id_is_a_notification(self, dispatcher, repo):
        assert dispatcher.dispatch(envelope("item.add", {"text": "m"}, id_=None)) is None
        assert len(repo.list()) == 1

    def test_failing_notifications_are_silent(self, dispatcher):
        assert dispatcher.dispatch({"jsonrpc": "2.0", "method": "item.remove", "params": {"id": 1}}) is None
        assert dispatcher.dispatch({"jsonrpc": "2.0", "method": "missing"}) is None

    def test_faulting_notification_is_silent(self):
        dispatcher = RequestDispatcher(build_registry(ExplodingRepository(), "svc", "d"))
        assert dispatcher.dispatch({"jsonrpc": "2.0", "method": "item.list"}) is None


def test_rpc_error_omits_empty_data():
    assert RpcError(1, "m").to_dict() == {"code": 1, "message": "m"}
    assert RpcError(1, "m", data={"k": 1}).to_dict() == {"code": 1, "message": "m", "data": {"k": 1}}
