[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "rtefmt"
version = "1.0.0"
description = "Parser for RTEdbg format definition files: message directives, value specifiers and input/output file selection"
requires-python = ">=3.10"
dependencies = []
keywords = ["rtedbg", "format", "parser", "embedded", "logging", "trace"]
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
    "Topic :: Software Development :: Debuggers",
    "Topic :: Software Development :: Embedded Systems",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["rtefmt"]

[tool.pytest.ini_options]
addopts = "-ra"
