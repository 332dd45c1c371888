[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "proxyweave"
version = "0.1.0"
description = "Building blocks for proxy servers: access rules, static host tables, proxy node parsing, obfuscation framing and an HTTP proxy handler"
requires-python = ">=3.10"
dependencies = []
keywords = [
    "proxy",
    "http-proxy",
    "connect",
    "obfuscation",
    "permissions",
    "hosts",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Internet :: Proxy Servers",
    "Topic :: System :: Networking",
    "Typing :: Typed",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["proxyweave"]

[tool.hatch.build.targets.sdist]
include = ["proxyweave", "tests", "README.md", "pyproject.toml"]

[tool.pytest.ini_options]
addopts = "-ra"
testpaths = ["tests"]

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
warn_redundant_casts = true
