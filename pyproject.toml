[build-system]
requires = ["setuptools>=61.0"]
build-backend = "setuptools.build_meta"

[project]
name = "clayout"
version = "0.1.0"
description = "Parse, evaluate and annotate textual descriptions of C type layouts"
requires-python = ">=3.10"
dependencies = []
keywords = ["c", "abi", "layout", "struct", "alignment", "bitfield", "parser"]
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
    "Topic :: Software Development :: Compilers",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.setuptools.packages.find]
include = ["clayout*"]

[tool.pytest.ini_options]
addopts = "-ra"
