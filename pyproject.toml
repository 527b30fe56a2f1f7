[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "retrostage"
version = "0.1.0"
description = "Stage, tile, sprite, camera, collision and fixed-point 3D helpers for a retro 2D side-scrolling game engine"
requires-python = ">=3.10"
dependencies = []
keywords = ["game engine", "retro", "side-scroller", "tiles", "gif", "lzw", "collision", "fixed-point"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Operating System :: OS Independent",
    "Topic :: Games/Entertainment :: Side-Scrolling/Arcade Games",
    "Topic :: Software Development :: Libraries :: Python Modules",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["retrostage"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
