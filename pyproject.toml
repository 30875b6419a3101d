[build-system]
requires = ["hatchling>=1.21"]
build-backend = "hatchling.build"

[project]
name = "mailvet"
version = "0.1.0"
description = "Email domain validation: disposable detection, DNS checks, SPF/DKIM/DMARC analysis, typo hints and risk scoring, with an HTTP API"
requires-python = ">=3.11"
keywords = ["email", "validation", "disposable", "dns", "spf", "dmarc", "dkim", "api"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Framework :: AsyncIO",
    "Topic :: Communications :: Email",
    "Topic :: Internet :: Name Service (DNS)",
    "Topic :: Internet :: WWW/HTTP :: HTTP Servers",
]
dependencies = [
    "dnspython>=2.4",
    "starlette>=0.37",
    "uvicorn>=0.27",
]

[project.optional-dependencies]
test = [
    "pytest>=8.0",
    "pytest-asyncio>=0.23",
    "httpx>=0.27",
]

[project.scripts]
mailvet = "mailvet.server:main"

[tool.hatch.build.targets.wheel]
packages = ["mailvet"]

[tool.hatch.build.targets.sdist]
include = ["mailvet", "tests", "pyproject.toml"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py311"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP", "SIM"]

[tool.mypy]
python_version = "3.11"
warn_unused_ignores = true
warn_redundant_casts = true
