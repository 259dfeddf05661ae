import pytest

from logsink.filters import TargetFilter, prefix_matches


def _filter(allow=(), deny=()) -> TargetFilter:
    return TargetFilter.from_lists(allow, deny, separator="::")


def test_deny_only_drops_matching_subtree():
    f = _filter(deny=["h2::client"])
    assert f.should_emit("h2::client::conn") is False
    assert f.should_emit("h2::client") is False
    assert f.should_emit("h2::server") is True


def test_deny_overrides_allow():
    f = _filter(allow=["h2"], deny=["h2::codec"])
    assert f.should_emit("h2::codec") is False
    assert f.should_emit("h2::codec::framed_read") is False
    assert f.should_emit("h2::client") is True
    assert f.should_emit("hyper::client") is False


def test_prefix_must_end_on_segment_boundary():
    assert prefix_matches("h2::client::conn", "h2::client", "::")
    assert prefix_matches("h2::client", "h2::client", "::")
    assert not prefix_matches("h2::clientele", "h2::client", "::")
    assert not prefix_matches("h2", "h2::client", "::")


def test_matching_is_case_sensitive():
    f = _filter(allow=["App"])
    assert f.should_emit("App::db")
    assert not f.should_emit("app::db")


def test_no_rules_emits_everything():
    f = TargetFilter()
    assert f.should_emit("anything.at.all")
    assert f.should_emit("")


def test_empty_path_only_fails_when_allow_list_is_set():
    assert _filter(deny=["h2"]).should_emit("") is True
    assert _filter(allow=["h2"]).should_emit("") is False


def test_default_separator_is_dot():
    f = TargetFilter.from_lists(deny=["urllib3"])
    assert not f.should_emit("urllib3.connectionpool")
    assert f.should_emit("urllib3x.pool")


PATHS = ["", "a", "a::b", "a::b::c", "a::bc", "b", "b::a", "ab"]
RULES = [
    ((), ()),
    (("a",), ()),
    ((), ("a::b",)),
    (("a", "b"), ("a::b",)),
    (("a::b",), ("a",)),
    (("ab", "b::a"), ("b",)),
]


@pytest.mark.parametrize("allow,deny", RULES)
def test_should_emit_matches_definition(allow, deny):
    f = _filter(allow, deny)
    for path in PATHS:
        eligible = not allow or any(prefix_matches(path, p, "::") for p in allow)
        denied = any(path == p or path.startswith(p + "::") for p in deny)
        assert f.should_emit(path) is (eligible and not denied), path
