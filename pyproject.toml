[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "logenc"
version = "0.1.0"
description = "Low-level JSON and CBOR field encoders for structured logging, with a CBOR-to-JSON stream decoder"
requires-python = ">=3.10"
dependencies = []
keywords = ["logging", "structured-logging", "json", "cbor", "encoder", "decoder"]
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
    "Topic :: System :: Logging",
    "Topic :: Software Development :: Libraries :: Python Modules",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["logenc"]

[tool.hatch.build.targets.sdist]
include = ["logenc", "tests"]

[tool.pytest.ini_options]
addopts = "-ra"
