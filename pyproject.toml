[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "kvstore"
version = "0.1.0"
description = "A small in-memory key-value server with array, red-black tree and hash table stores behind a plain text protocol"
requires-python = ">=3.10"
dependencies = []
keywords = ["key-value", "database", "server", "red-black tree", "hash table", "reactor"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Database :: Database Engines/Servers",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
kvstore-server = "kvstore.server:main"
kvstore-client = "kvstore.client:main"
kvstore-bench = "kvstore.bench:main"

[tool.hatch.build.targets.wheel]
packages = ["kvstore"]

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
