import pytest

from apiserverkit.scope import (
    CLUSTER_ROLE_INDICATOR,
    SCOPE_DISCOVERY_RULE,
    USER_ACCESS_CHECK,
    USER_FULL,
    USER_INDICATOR,
    USER_INFO,
    USER_LIST_ALL_PROJECTS,
    USER_LIST_SCOPED_PROJECTS,
    ClusterRole,
    ClusterRoleEvaluator,
    ClusterRoleNotFoundError,
    PolicyRule,
    ScopeError,
    UserEvaluator,
    default_supported_scopes,
    describe_scopes,
    parse_cluster_role_scope,
    rules_allow,
    scopes_to_rules,
    scopes_to_visible_namespaces,
)


class FakePolicyGetter:
    def __init__(self, cluster_roles=(), err=None):
        self.cluster_roles = list(cluster_roles)
        self.err = err

    def get(self, name):
        for role in self.cluster_roles:
            if role.name == name:
                return role
        if self.err is not None:
            raise self.err
        return ClusterRole()


def _run(scopes, namespace, getter):
    try:
        return scopes_to_rules(scopes, namespace, getter), None
    except ScopeError as err:
        return err.rules, err


@pytest.mark.parametrize(
    "scopes, err, num_rules",
    [
        ([USER_INDICATOR], "no scope evaluator found", 1),
        ([USER_INDICATOR + "foo"], "no scope evaluator found", 1),
        ([USER_INFO], "", 2),
        ([USER_INDICATOR, USER_INFO], "no scope evaluator found", 2),
        ([USER_ACCESS_CHECK], "", 3),
        ([USER_INFO, USER_ACCESS_CHECK], "", 4),
        ([USER_LIST_SCOPED_PROJECTS], "", 2),
    ],
)
def test_user_evaluator(scopes, err, num_rules):
    rules, error = _run(scopes, "namespace", None)
    if err:
        assert error is not None and err in str(error)
    else:
        assert error is None
    assert len(rules) == num_rules


_ADMIN = ClusterRole(name="admin", rules=[PolicyRule()])


@pytest.mark.parametrize(
    "scopes, namespace, roles, getter_err, num_rules, err",
    [
        ([CLUSTER_ROLE_INDICATOR], "", [], None, 1, "bad format for"),
        ([CLUSTER_ROLE_INDICATOR + "foo"], "", [], None, 1, "bad format for"),
        ([CLUSTER_ROLE_INDICATOR + ":ns"], "", [], None, 1, "bad format for"),
        ([CLUSTER_ROLE_INDICATOR + "foo:"], "", [], None, 1, "bad format for"),
        (
            [CLUSTER_ROLE_INDICATOR + "missing:*"],
            "",
            [_ADMIN],
            RuntimeError('clusterrole "missing" not found'),
            1,
            'clusterrole "missing" not found',
        ),
        ([CLUSTER_ROLE_INDICATOR + "admin:mismatch"], "current-ns", [_ADMIN], None, 1, ""),
        ([CLUSTER_ROLE_INDICATOR + "admin:*"], "current-ns", [_ADMIN], None, 2, ""),
        ([CLUSTER_ROLE_INDICATOR + "admin:current-ns"], "current-ns", [_ADMIN], None, 2, ""),
        (
            [CLUSTER_ROLE_INDICATOR + "admin:two:current-ns"],
            "current-ns",
            [ClusterRole(name="admin:two", rules=[PolicyRule()])],
            None,
            2,
            "",
        ),
        (
            [CLUSTER_ROLE_INDICATOR + "admin:two:current-ns"],
            "current-ns",
            [],
            RuntimeError("some bad thing happened"),
            1,
            "some bad thing happened",
        ),
    ],
)
def test_cluster_role_evaluator(scopes, namespace, roles, getter_err, num_rules, err):
    rules, error = _run(scopes, namespace, FakePolicyGetter(roles, getter_err))
    if err:
        assert error is not None and err in str(error)
    else:
        assert error is None
    assert len(rules) == num_rules


@pytest.mark.parametrize(
    "role_rule, scopes, expected",
    [
        (
            PolicyRule(api_groups=[""], resources=["pods", "secrets"]),
            [CLUSTER_ROLE_INDICATOR + "admin:*"],
            PolicyRule(api_groups=[""], resources=["pods"]),
        ),
        (
            PolicyRule(api_groups=[], resources=["pods", "secrets"]),
            [CLUSTER_ROLE_INDICATOR + "admin:*"],
            PolicyRule(api_groups=[], resources=["pods", "secrets"]),
        ),
        (
            PolicyRule(api_groups=["foo"], resources=["pods", "secrets"]),
            [CLUSTER_ROLE_INDICATOR + "admin:*"],
            PolicyRule(api_groups=["foo"], resources=["pods", "secrets"]),
        ),
        (
            PolicyRule(api_groups=["", "and-foo"], resources=["pods", "oauthaccesstokens"]),
            [CLUSTER_ROLE_INDICATOR + "admin:*"],
            PolicyRule(api_groups=["", "and-foo"], resources=["pods"]),
        ),
        (
            PolicyRule(api_groups=[""], resources=["pods", "secrets"]),
            [CLUSTER_ROLE_INDICATOR + "admin:*:!"],
            PolicyRule(api_groups=[""], resources=["pods", "secrets"]),
        ),
    ],
)
def test_escalation_protection(role_rule, scopes, expected):
    getter = FakePolicyGetter([ClusterRole(name="admin", rules=[role_rule])])
    assert scopes_to_rules(scopes, "ns-01", getter) == [SCOPE_DISCOVERY_RULE, expected]


def test_unbounded_rules_are_dropped_unless_escalating():
    role = ClusterRole(
        name="admin",
        rules=[PolicyRule(verbs=["*"], api_groups=[""], resources=["pods"])],
    )
    getter = FakePolicyGetter([role])
    assert scopes_to_rules([CLUSTER_ROLE_INDICATOR + "admin:*"], "ns", getter) == [
        SCOPE_DISCOVERY_RULE
    ]
    escalated = scopes_to_rules([CLUSTER_ROLE_INDICATOR + "admin:*:!"], "ns", getter)
    assert escalated == [SCOPE_DISCOVERY_RULE, role.rules[0]]


def test_not_found_role_gives_no_rules():
    class Getter:
        def get(self, name):
            raise ClusterRoleNotFoundError(name)

    assert scopes_to_rules([CLUSTER_ROLE_INDICATOR + "gone:*"], "ns", Getter()) == [
        SCOPE_DISCOVERY_RULE
    ]


def test_user_info_rule_content():
    rules = UserEvaluator().resolve_rules(USER_INFO, "ns", None)
    assert rules == [
        PolicyRule(
            verbs=["get"],
            api_groups=["", "user.openshift.io"],
            resources=["users"],
            resource_names=["~"],
        )
    ]


def test_user_evaluator_rejects_unknown_scope():
    with pytest.raises(ValueError, match="unrecognized scope"):
        UserEvaluator().resolve_rules(USER_INDICATOR + "nope", "ns", None)


def test_handles():
    assert UserEvaluator().handles(USER_FULL)
    assert not UserEvaluator().handles(USER_INDICATOR)
    assert ClusterRoleEvaluator().handles(CLUSTER_ROLE_INDICATOR + "x:y")
    assert not ClusterRoleEvaluator().handles(USER_INFO)


@pytest.mark.parametrize(
    "scope, expected",
    [
        ("role:admin:*", ("admin", "*", False)),
        ("role:admin:two:current-ns", ("admin:two", "current-ns", False)),
        ("role:admin:*:!", ("admin", "*", True)),
    ],
)
def test_parse_cluster_role_scope(scope, expected):
    assert parse_cluster_role_scope(scope) == expected


@pytest.mark.parametrize("scope", ["role:", "role:foo", "role::ns", "role:foo:", "user:info"])
def test_parse_cluster_role_scope_bad_format(scope):
    with pytest.raises(ValueError, match="bad format for"):
        parse_cluster_role_scope(scope)


def test_rules_allow():
    rule = PolicyRule(verbs=["get"], api_groups=[""], resources=["namespaces"])
    assert rules_allow("", "get", "namespaces", [rule])
    assert not rules_allow("", "list", "namespaces", [rule])
    assert not rules_allow("apps", "get", "namespaces", [rule])
    assert rules_allow("x", "delete", "pods", [PolicyRule(["*"], ["*"], ["*"])])
    named = PolicyRule(verbs=["get"], api_groups=[""], resources=["namespaces"], resource_names=["a"])
    assert not rules_allow("", "get", "namespaces", [named])
    assert not rules_allow("", "get", "namespaces", [])


def test_visible_namespaces_empty_scopes_is_everything():
    assert scopes_to_visible_namespaces([], None, False) == {"*"}


def test_visible_namespaces_user_scopes():
    assert scopes_to_visible_namespaces([USER_FULL], None, False) == {"*"}
    assert scopes_to_visible_namespaces([USER_LIST_ALL_PROJECTS], None, False) == {"*"}
    assert scopes_to_visible_namespaces([USER_INFO], None, False) == set()


def test_visible_namespaces_cluster_role():
    viewer = ClusterRole(
        name="viewer",
        rules=[PolicyRule(verbs=["get"], api_groups=[""], resources=["namespaces"])],
    )
    other = ClusterRole(
        name="other",
        rules=[PolicyRule(verbs=["get"], api_groups=[""], resources=["pods"])],
    )
    getter = FakePolicyGetter([viewer, other])
    assert scopes_to_visible_namespaces(["role:viewer:proj"], getter, False) == {"proj"}
    assert scopes_to_visible_namespaces(["role:other:proj"], getter, False) == set()


def test_visible_namespaces_unhandled_scopes():
    with pytest.raises(ScopeError, match="no scope evaluator found") as info:
        scopes_to_visible_namespaces(["bogus", USER_FULL], None, False)
    assert info.value.namespaces == {"*"}
    assert scopes_to_visible_namespaces(["bogus"], None, True) == set()


def test_multiple_errors_are_aggregated():
    with pytest.raises(ScopeError) as info:
        scopes_to_rules(["a", "b"], "ns", None)
    assert len(info.value.errors) == 2
    assert str(info.value) == '[no scope evaluator found for "a", no scope evaluator found for "b"]'


def test_default_supported_scopes():
    assert default_supported_scopes() == [
        USER_ACCESS_CHECK,
        USER_FULL,
        USER_INFO,
        USER_LIST_ALL_PROJECTS,
        USER_LIST_SCOPED_PROJECTS,
    ]


def test_describe_scopes():
    described = describe_scopes([USER_FULL, "role:x:y"])
    assert described == {
        USER_FULL: "Full read/write access with all of your permissions",
        "role:x:y": "",
    }