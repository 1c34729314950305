[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "trackplot"
version = "0.1.0"
description = "Time-series containers, transforms, filters and loaders for CSV files and ULog flight logs"
requires-python = ">=3.10"
dependencies = []
keywords = ["timeseries", "ulog", "csv", "telemetry", "signal processing", "filters"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: Science/Research",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Scientific/Engineering :: Visualization",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["trackplot"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"
