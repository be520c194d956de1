[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "sakuracloud_exporter"
version = "0.18.6"
description = "Prometheus-format exporter for SakuraCloud VPC routers, zones and web acceleration sites"
requires-python = ">=3.10"
dependencies = []
keywords = [
    "prometheus",
    "exporter",
    "metrics",
    "monitoring",
    "sakuracloud",
]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Environment :: No Input/Output (Daemon)",
    "Intended Audience :: System Administrators",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Monitoring",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
sakuracloud_exporter = "sakuracloud_exporter.app:main"

[tool.hatch.build.targets.wheel]
packages = ["sakuracloud_exporter"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
