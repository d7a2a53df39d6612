[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "jupiterkit"
version = "0.1.0"
description = "Service registry, size-constrained LRU caches with soft/hard TTLs, and a file repository with change events"
requires-python = ">=3.10"
dependencies = []
keywords = ["lru", "cache", "ttl", "service-registry", "repository"]
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
    "Topic :: Software Development :: Libraries :: Python Modules",
    "Typing :: Typed",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["jupiterkit"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
