[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "apiserverkit"
version = "0.1.0"
description = "Helpers for API servers: name validation, label selectors, scope rules, security constraint strategies and flag building"
requires-python = ">=3.10"
dependencies = []
keywords = ["apiserver", "label-selector", "rbac", "scopes", "security-context", "quota"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Libraries",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["apiserverkit"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"
