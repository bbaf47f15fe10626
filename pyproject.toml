[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "sean816"
version = "0.1.0"
description = "Emulator and assembler for the Sean816, a small 8-bit CPU with 16-bit addressing"
requires-python = ">=3.10"
dependencies = []
keywords = ["emulator", "assembler", "8-bit", "cpu", "virtual machine", "retro"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Intended Audience :: Education",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Emulators",
    "Topic :: Software Development :: Assemblers",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
sean816 = "sean816.emulator:main"
sean816-asm = "sean816.assembler:main"

[tool.hatch.build.targets.wheel]
packages = ["sean816"]

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
strict = true
