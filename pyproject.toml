[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "vmemkit"
version = "0.1.0"
description = "Virtual pointer mappers over byte buffers, a tiny tuple toolkit and a minimal PNG/BMP/TGA writer"
requires-python = ">=3.10"
dependencies = []
keywords = ["virtual pointer", "allocator", "buffer", "png", "bmp", "tga", "tuple"]
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
    "Topic :: Software Development :: Libraries",
    "Topic :: Multimedia :: Graphics :: Graphics Conversion",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["vmemkit"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 88
target-version = "py310"

[tool.mypy]
python_version = "3.10"
strict = true
