import pytest

from spanmetrics.labels import Allowlist, IncludeAll, Key, Label, LabelFilter


def test_key_accepts_pairs_and_labels_equally():
    from_pairs = Key("login_attempts", [("service", "login_service")])
    from_labels = Key("login_attempts", (Label("service", "login_service"),))
    assert from_pairs == from_labels
    assert from_pairs.labels == (Label("service", "login_service"),)


def test_key_without_labels_has_empty_tuple():
    assert Key("login_attempts").labels == ()


def test_with_extra_labels_appends_in_order():
    key = Key("login_attempts", [("service", "login_service")])
    extended = key.with_extra_labels([Label("user", "ferris"), ("user.email", "[email]")])
    assert extended.name == "login_attempts"
    assert extended.labels == (
        Label("service", "login_service"),
        Label("user", "ferris"),
        Label("user.email", "[email]"),
    )


def test_with_extra_labels_leaves_original_untouched():
    key = Key("login_attempts", [("service", "login_service")])
    key.with_extra_labels([("user", "ferris")])
    assert key.labels == (Label("service", "login_service"),)


def test_with_extra_labels_empty_gives_equal_key():
    key = Key("my_counter", [("a", "b")])
    assert key.with_extra_labels([]) == key


def test_label_order_matters_for_equality():
    first = Key("k", [("a", "1"), ("b", "2")])
    second = Key("k", [("b", "2"), ("a", "1")])
    assert not first == second


def test_keys_are_hashable():
    key = Key("k", [("a", "1")])
    assert {key: 1}[Key("k", [("a", "1")])] == 1


def test_include_all_accepts_everything():
    include = IncludeAll()
    assert include.should_include_label("login_attempts", Label("user", "ferris")) is True
    assert include.should_include_label("other", Label("", "")) is True


def test_include_all_instances_are_equal():
    filters = [IncludeAll(), IncludeAll()]
    assert filters.count(IncludeAll()) == 2


def test_allowlist_only_allows_listed_names():
    allow = Allowlist(["env", "service"])
    assert allow.should_include_label("login_attempts", Label("env", "test")) is True
    assert allow.should_include_label("login_attempts", Label("service", "login_service")) is True
    assert allow.should_include_label("login_attempts", Label("user", "ferris")) is False


def test_allowlist_ignores_metric_name():
    allow = Allowlist(["env"])
    label = Label("env", "test")
    assert allow.should_include_label("a", label) == allow.should_include_label("b", label)


def test_allowlist_accepts_generator():
    allow = Allowlist(name for name in ("env", "service"))
    assert allow.label_names == frozenset({"env", "service"})


def test_allowlist_equality():
    assert Allowlist(["env", "service"]) == Allowlist(["service", "env"])


def test_allowlist_rejects_plain_string():
    with pytest.raises(TypeError):
        Allowlist("env")


def test_label_filter_is_abstract():
    with pytest.raises(TypeError):
        LabelFilter()


def test_custom_filter_subclass():
    class OnlyUser(LabelFilter):
        def should_include_label(self, name, label):
            return label.key == "user"

    only = OnlyUser()
    assert only.should_include_label("x", Label("user", "ferris")) is True
    assert only.should_include_label("x", Label("user.email", "[email]")) is False