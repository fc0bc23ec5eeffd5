[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "railroad"
version = "0.3.4"
description = "Safety building blocks for AI coding agents: trace logs, file snapshots and rollback, session threat tracking and OS sandbox profiles"
requires-python = ">=3.10"
dependencies = []
keywords = ["ai", "agents", "safety", "sandbox", "rollback", "snapshot", "trace"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Operating System :: MacOS",
    "Operating System :: POSIX :: Linux",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Security",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["railroad"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
