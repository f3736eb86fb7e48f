[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "bubbleadmin"
version = "0.1.0"
description = "Building blocks for a multi-tenant admin backend: snowflake IDs, request identity context, domain RBAC with data scopes, token store, caches, query scopes, cron jobs, a websocket hub, reply envelopes and local storage."
requires-python = ">=3.10"
keywords = [
    "admin",
    "rbac",
    "multi-tenant",
    "snowflake",
    "websocket",
    "cron",
    "token-store",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Operating System :: OS Independent",
    "Topic :: Internet :: WWW/HTTP :: Dynamic Content",
    "Topic :: Software Development :: Libraries :: Application Frameworks",
]
dependencies = [
    "jinja2>=3.0",
]

[project.optional-dependencies]
test = [
    "pytest>=7.0",
    "pytest-asyncio>=0.21",
]

[tool.hatch.build.targets.wheel]
packages = ["bubbleadmin"]

[tool.hatch.build.targets.sdist]
include = ["bubbleadmin", "tests", "README.md"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
warn_redundant_casts = true
