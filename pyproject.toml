[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "aisha"
version = "3.0.0"
description = "Building blocks of an interactive Unix shell: tokenizer, syntax checker, pipelines, job control, history and line editing"
requires-python = ">=3.10"
dependencies = []
keywords = ["shell", "tokenizer", "pipeline", "job-control", "readline", "completion"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Operating System :: POSIX",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Shells",
    "Topic :: Terminals",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["aisha"]

[tool.hatch.build.targets.sdist]
include = ["aisha", "tests", "README.md"]

[tool.pytest.ini_options]
addopts = "-ra"
testpaths = ["tests"]
