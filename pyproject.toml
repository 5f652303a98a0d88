[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "sdmmc"
version = "0.1.0"
description = "SD and SDHC card access over SPI: command protocol, CRC helpers and Card Specific Data decoding"
requires-python = ">=3.10"
dependencies = []
keywords = ["sd", "sdhc", "spi", "csd", "crc7", "crc16", "block-device", "embedded"]
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
    "Topic :: Software Development :: Embedded Systems",
    "Topic :: System :: Hardware",
    "Typing :: Typed",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["sdmmc"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
