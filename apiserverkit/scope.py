"""Turn OAuth token scopes into the policy rules and namespaces they grant."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, replace
from typing import Protocol

SCOPES_ALL_NAMESPACES = "*"

VERB_ALL = "*"
API_GROUP_ALL = "*"
RESOURCE_ALL = "*"
NON_RESOURCE_ALL = "*"

_LEGACY_GROUP = ""
_CORE_GROUP = ""
_KUBE_AUTHORIZATION_GROUP = "authorization.k8s.io"
_OPENSHIFT_AUTHORIZATION_GROUP = "authorization.openshift.io"
_IMAGE_GROUP = "image.openshift.io"
_NETWORK_GROUP = "network.openshift.io"
_OAUTH_GROUP = "oauth.openshift.io"
_PROJECT_GROUP = "project.openshift.io"
_USER_GROUP = "user.openshift.io"

USER_INDICATOR = "user:"
CLUSTER_ROLE_INDICATOR = "role:"

USER_INFO = USER_INDICATOR + "info"
USER_ACCESS_CHECK = USER_INDICATOR + "check-access"
# Permission to see the projects that this token can see.
USER_LIST_SCOPED_PROJECTS = USER_INDICATOR + "list-scoped-projects"
# Permission to see every project the user can see.
USER_LIST_ALL_PROJECTS = USER_INDICATOR + "list-projects"
# All permissions of the user.
USER_FULL = USER_INDICATOR + "full"


@dataclass(frozen=True)
class PolicyRule:
    """One RBAC policy rule. Sequences are stored as tuples."""

    verbs: tuple[str, ...] = ()
    api_groups: tuple[str, ...] = ()
    resources: tuple[str, ...] = ()
    resource_names: tuple[str, ...] = ()
    non_resource_urls: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        for name in ("verbs", "api_groups", "resources", "resource_names", "non_resource_urls"):
            object.__setattr__(self, name, tuple(getattr(self, name)))


@dataclass(frozen=True)
class ClusterRole:
    """A named set of policy rules."""

    name: str = ""
    rules: tuple[PolicyRule, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "rules", tuple(self.rules))


class ClusterRoleGetter(Protocol):
    def get(self, name: str) -> ClusterRole: ...


class ClusterRoleNotFoundError(LookupError):
    """Raised by a cluster role getter when the role does not exist."""


class ScopeError(Exception):
    """One or more scopes could not be evaluated.

    `result` holds what was resolved in spite of the errors.
    """

    def __init__(self, errors: Sequence[Exception], result: object) -> None:
        self.errors = list(errors)
        self.result = result
        super().__init__(_aggregate_message(self.errors))

    @property
    def rules(self) -> object:
        return self.result

    @property
    def namespaces(self) -> object:
        return self.result


def _aggregate_message(errors: Sequence[Exception]) -> str:
    if len(errors) == 1:
        return str(errors[0])
    seen: list[str] = []
    for err in errors:
        message = str(err)
        if message not in seen:
            seen.append(message)
    if len(seen) == 1:
        return seen[0]
    return "[" + ", ".join(seen) + "]"


def _rule(
    verbs: Iterable[str],
    groups: Iterable[str] = (),
    resources: Iterable[str] = (),
    names: Iterable[str] = (),
    urls: Iterable[str] = (),
) -> PolicyRule:
    return PolicyRule(
        verbs=sorted(set(verbs)),
        api_groups=sorted(set(groups)),
        resources=sorted(set(resources)),
        resource_names=sorted(set(names)),
        non_resource_urls=sorted(set(urls)),
    )


# Lets a client discover the API resources available on the server.
SCOPE_DISCOVERY_RULE = PolicyRule(
    verbs=("get",),
    non_resource_urls=(
        "/version", "/version/*",
        "/api", "/api/*",
        "/apis", "/apis/*",
        "/oapi", "/oapi/*",
        "/openapi/v2",
        "/swaggerapi", "/swaggerapi/*", "/swagger.json", "/swagger-2.0.0.pb-v1",
        "/osapi", "/osapi/",
        "/.well-known", "/.well-known/*",
        "/",
    ),
)

_DEFAULT_SUPPORTED_SCOPES = {
    USER_INFO: "Read-only access to your user information (including username, identities, and group membership)",
    USER_ACCESS_CHECK: 'Read-only access to view your privileges (for example, "can I create builds?")',
    USER_LIST_SCOPED_PROJECTS: "Read-only access to list your projects viewable with this token and view their metadata (display name, description, etc.)",
    USER_LIST_ALL_PROJECTS: "Read-only access to list your projects and view their metadata (display name, description, etc.)",
    USER_FULL: "Full read/write access with all of your permissions",
}

_USER_SCOPE_RULES = {
    USER_INFO: (
        _rule(["get"], [_USER_GROUP, _LEGACY_GROUP], ["users"], names=["~"]),
    ),
    USER_ACCESS_CHECK: (
        _rule(["create"], [_KUBE_AUTHORIZATION_GROUP], ["selfsubjectaccessreviews"]),
        _rule(
            ["create"],
            [_OPENSHIFT_AUTHORIZATION_GROUP, _LEGACY_GROUP],
            ["selfsubjectrulesreviews"],
        ),
    ),
    USER_LIST_SCOPED_PROJECTS: (
        _rule(["list", "watch"], [_PROJECT_GROUP, _LEGACY_GROUP], ["projects"]),
    ),
    USER_LIST_ALL_PROJECTS: (
        _rule(["list", "watch"], [_PROJECT_GROUP, _LEGACY_GROUP], ["projects"]),
        _rule(["get"], [_CORE_GROUP], ["namespaces"]),
    ),
    USER_FULL: (
        _rule([VERB_ALL], [API_GROUP_ALL], [RESOURCE_ALL]),
        _rule([VERB_ALL], urls=[NON_RESOURCE_ALL]),
    ),
}

# Resources whose access is considered escalating for scope evaluation.
_ESCALATING_SCOPE_RESOURCES = (
    (_CORE_GROUP, "secrets"),
    (_IMAGE_GROUP, "imagestreams/secrets"),
    (_OAUTH_GROUP, "oauthauthorizetokens"),
    (_OAUTH_GROUP, "oauthaccesstokens"),
    (_OPENSHIFT_AUTHORIZATION_GROUP, "roles"),
    (_OPENSHIFT_AUTHORIZATION_GROUP, "rolebindings"),
    (_OPENSHIFT_AUTHORIZATION_GROUP, "clusterroles"),
    (_OPENSHIFT_AUTHORIZATION_GROUP, "clusterrolebindings"),
    # creating a service with an external IP outside the allowed range
    (_NETWORK_GROUP, "service/externalips"),
    (_LEGACY_GROUP, "imagestreams/secrets"),
    (_LEGACY_GROUP, "oauthauthorizetokens"),
    (_LEGACY_GROUP, "oauthaccesstokens"),
    (_LEGACY_GROUP, "roles"),
    (_LEGACY_GROUP, "rolebindings"),
    (_LEGACY_GROUP, "clusterroles"),
    (_LEGACY_GROUP, "clusterrolebindings"),
)


def parse_cluster_role_scope(scope: str) -> tuple[str, str, bool]:
    """Split "role:<name>:<namespace>[:!]" into (name, namespace, escalating).

    Role names may contain colons; namespaces may not.
    """
    if not scope.startswith(CLUSTER_ROLE_INDICATOR):
        raise ValueError(f"bad format for scope {scope}")
    escalating = False
    if scope.endswith(":!"):
        escalating = True
        scope = scope[: scope.rindex(":")]
    tokens = scope.split(":", 1)
    if len(tokens) != 2:
        raise ValueError(f"bad format for scope {scope}")
    rest = tokens[1]
    last_colon = rest.rfind(":")
    if last_colon <= 0 or last_colon == len(rest) - 1:
        raise ValueError(f"bad format for scope {scope}")
    return rest[:last_colon], rest[last_colon + 1 :], escalating


def _matches(values: Sequence[str], value: str) -> bool:
    return value in values or "*" in values


def rules_allow(
    api_group: str, verb: str, resource: str, rules: Iterable[PolicyRule]
) -> bool:
    """Return True if any rule allows `verb` on the unnamed `resource` in `api_group`."""
    return any(
        _matches(rule.verbs, verb)
        and _matches(rule.api_groups, api_group)
        and _matches(rule.resources, resource)
        and (not rule.resource_names or "" in rule.resource_names)
        for rule in rules
    )


def _remove_escalating_resources(rule: PolicyRule) -> PolicyRule:
    """Drop escalating resources from a rule, erring on the side of removing too much."""
    resources = rule.resources
    for group, resource in _ESCALATING_SCOPE_RESOURCES:
        if group in rule.api_groups and resource in resources:
            resources = tuple(r for r in resources if r != resource)
    if resources == rule.resources:
        return rule
    return replace(rule, resources=resources)


class UserEvaluator:
    """Evaluates "user:<scope name>" scopes."""

    def handles(self, scope: str) -> bool:
        return scope in _DEFAULT_SUPPORTED_SCOPES

    def resolve_rules(
        self, scope: str, namespace: str, cluster_role_getter: ClusterRoleGetter | None
    ) -> list[PolicyRule]:
        try:
            return list(_USER_SCOPE_RULES[scope])
        except KeyError:
            raise ValueError(f"unrecognized scope: {scope}") from None

    def resolve_gettable_namespaces(
        self, scope: str, cluster_role_getter: ClusterRoleGetter | None
    ) -> list[str]:
        if scope in (USER_FULL, USER_LIST_ALL_PROJECTS):
            return ["*"]
        return []


class ClusterRoleEvaluator:
    """Evaluates "role:<cluster role>:<namespace or *>[:!]" scopes."""

    def handles(self, scope: str) -> bool:
        return scope.startswith(CLUSTER_ROLE_INDICATOR)

    def resolve_rules(
        self, scope: str, namespace: str, cluster_role_getter: ClusterRoleGetter
    ) -> list[PolicyRule]:
        _, scope_namespace, _ = parse_cluster_role_scope(scope)
        # A namespace mismatch grants nothing, but is not an error.
        if scope_namespace not in (SCOPES_ALL_NAMESPACES, namespace):
            return []
        return self._resolve_rules(scope, cluster_role_getter)

    def _resolve_rules(
        self, scope: str, cluster_role_getter: ClusterRoleGetter
    ) -> list[PolicyRule]:
        role_name, _, escalating = parse_cluster_role_scope(scope)
        try:
            role = cluster_role_getter.get(role_name)
        except ClusterRoleNotFoundError:
            return []

        rules = []
        for rule in role.rules:
            if escalating:
                rules.append(rule)
                continue
            # Unbounded access is never allowed through a scope.
            if (
                VERB_ALL in rule.verbs
                or RESOURCE_ALL in rule.resources
                or API_GROUP_ALL in rule.api_groups
            ):
                continue
            rules.append(_remove_escalating_resources(rule))
        return rules

    def resolve_gettable_namespaces(
        self, scope: str, cluster_role_getter: ClusterRoleGetter
    ) -> list[str]:
        _, scope_namespace, _ = parse_cluster_role_scope(scope)
        rules = self._resolve_rules(scope, cluster_role_getter)
        if rules_allow(_CORE_GROUP, "get", "namespaces", rules):
            return [scope_namespace]
        return []


SCOPE_EVALUATORS = (UserEvaluator(), ClusterRoleEvaluator())


def _no_evaluator(scope: str) -> ValueError:
    return ValueError(f'no scope evaluator found for "{scope}"')


def scopes_to_rules(
    scopes: Iterable[str], namespace: str, cluster_role_getter: ClusterRoleGetter | None
) -> list[PolicyRule]:
    """Return the rules the scopes grant, always including the discovery rule.

    Errors do not stop evaluation; if any occur a ScopeError is raised whose
    `rules` hold everything that was resolved.
    """
    rules = [SCOPE_DISCOVERY_RULE]
    errors: list[Exception] = []
    for scope in scopes:
        found = False
        for evaluator in SCOPE_EVALUATORS:
            if not evaluator.handles(scope):
                continue
            found = True
            try:
                rules.extend(evaluator.resolve_rules(scope, namespace, cluster_role_getter))
            except Exception as err:  # getters may fail in any way; collect and go on
                errors.append(err)
        if not found:
            errors.append(_no_evaluator(scope))
    if errors:
        raise ScopeError(errors, rules)
    return rules


def scopes_to_visible_namespaces(
    scopes: Sequence[str],
    cluster_role_getter: ClusterRoleGetter | None,
    ignore_unhandled_scopes: bool,
) -> set[str]:
    """Return the namespaces the scopes have "get" access to.

    No scopes means every namespace ("*"). On errors a ScopeError is raised
    whose `namespaces` hold what was resolved.
    """
    if not scopes:
        return {"*"}
    visible: set[str] = set()
    errors: list[Exception] = []
    for scope in scopes:
        found = False
        for evaluator in SCOPE_EVALUATORS:
            if not evaluator.handles(scope):
                continue
            found = True
            try:
                allowed = evaluator.resolve_gettable_namespaces(scope, cluster_role_getter)
            except Exception as err:  # getters may fail in any way; collect and go on
                errors.append(err)
                continue
            visible.update(allowed)
            break
        if not found and not ignore_unhandled_scopes:
            errors.append(_no_evaluator(scope))
    if errors:
        raise ScopeError(errors, visible)
    return visible


def default_supported_scopes() -> list[str]:
    """Return the built-in user scopes, sorted."""
    return sorted(_DEFAULT_SUPPORTED_SCOPES)


def describe_scopes(scopes: Iterable[str]) -> dict[str, str]:
    """Map each scope to its description, or "" when it has none."""
    return {scope: _DEFAULT_SUPPORTED_SCOPES.get(scope, "") for scope in scopes}