# apiserverkit

Building blocks for API server components. The package uses only the standard library.

## Modules

- `apiserverkit.validation`: `validate_user_name` and `validate_group_name` return a list of reasons a name is rejected. The list is empty when the name is valid. The module also has the lower-level checks `validate_path_segment_name`, `is_qualified_name` and `is_valid_label_value`. `FieldError` is a `ValueError` that records an invalid value at a field path.
- `apiserverkit.labelselector`: `parse` reads exact-match selectors such as `"env = test, tier=front"` into a dict. It raises `LabelSelectorError` when the selector is malformed. `conflicts`, `merge` and `equals` work on label maps. `Lexer` and `Token` expose the tokenizer.
- `apiserverkit.configflags`:
  - `set_if_unset`, `args_with_prefix` and `to_flag_slice` build command-line flag maps of the form `dict[str, list[str]]`.
  - `audit_flags` adds audit flags from an `AuditConfig` to such a map. When the config carries an inline policy, `audit_flags` also writes that policy to disk.
- `apiserverkit.scope`: resolves token scopes such as `user:info` or `role:admin:my-namespace` (with an optional trailing `:!` to allow escalating resources).
  - `scopes_to_rules` returns a list of `PolicyRule`. The discovery rule is always included.
  - `scopes_to_visible_namespaces` returns the set of namespaces the scopes can see.
  - When a scope fails, both functions raise `ScopeError`. Its `rules` / `namespaces` attribute holds what was resolved.
  - Cluster roles come from any object with a `get(name)` method that returns a `ClusterRole`. That method raises `ClusterRoleNotFoundError` for missing roles.
  - The module also provides `default_supported_scopes`, `describe_scopes`, `parse_cluster_role_scope`, `rules_allow`, `UserEvaluator` and `ClusterRoleEvaluator`.
- `apiserverkit.quotalocks`: `LockFactory.get_lock` hands out one lock per quota name. `acquire_quota_locks` is a context manager that holds the locks of several quotas, taken in name order.
- `apiserverkit.capabilities`: `DefaultCapabilities` fills in a container's `Capabilities` with `generate` and checks them with `validate`. `validate` returns a list of `FieldError`. An allowed entry of `"*"` permits every capability.
- `apiserverkit.groups`: the group ID strategies `MustRunAs` (over `IDRange`s) and `RunAsAny`.

## Install

```
pip install .
```

## Examples

```python
from apiserverkit.labelselector import parse, merge

labels = parse("color=green, env = test")
assert labels == {"color": "green", "env": "test"}
assert merge(labels, {"tier": "front"})["tier"] == "front"
```

```python
from apiserverkit.configflags import set_if_unset, to_flag_slice

args = {"bind-address": ["0.0.0.0"]}
set_if_unset(args, "port", "8443")
print(to_flag_slice(args))  # ['--bind-address=0.0.0.0', '--port=8443']
```

```python
from apiserverkit.groups import IDRange, MustRunAs

strategy = MustRunAs([IDRange(1000, 2000)], "supplementalGroups")
print(strategy.generate(None))                # [1000]
print(strategy.validate("spec", None, [5]))   # one error: 5 is not an allowed group
```

```python
from apiserverkit.scope import scopes_to_rules

rules = scopes_to_rules(["user:info"], "my-namespace", None)
```

## What it does not do

This is a library of helpers, not a server. It has no admission plugin and no quota evaluator. It has no client for talking to a cluster and provides no command-line program. Cluster roles, quotas and pods must be supplied by the caller. The quota support covers only the per-quota locking.

## Running the tests

```
pip install .[test]
pytest
```