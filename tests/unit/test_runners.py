from pathlib import Path

import pytest

from coding_agent_chat.models import Language, Project
from coding_agent_chat.runners import (
    DenoRunner,
    FallbackRunner,
    NodeRunner,
    PythonRunner,
    find_main_file,
    get_runner,
)
from tests.helpers import make_file


def make_project(root: Path, *files, language: Language = Language.JAVASCRIPT) -> Project:
    for file in files:
        (root / file.path).parent.mkdir(parents=True, exist_ok=True)
        (root / file.path).write_text(file.content, encoding="utf-8")
    return Project(name="test", path=str(root), files=list(files), language=language)


@pytest.mark.parametrize(
    ("language", "runner_class"),
    [
        (Language.JAVASCRIPT, NodeRunner),
        (Language.TYPESCRIPT, DenoRunner),
        (Language.PYTHON, PythonRunner),
        (Language.TEXT, FallbackRunner),
        (Language.HTML, FallbackRunner),
    ],
)
def test_get_runner(settings, language, runner_class):
    assert isinstance(get_runner(language, settings), runner_class)


class TestFindMainFile:
    def test_prefers_index_or_main(self, tmp_path):
        project = make_project(tmp_path, make_file("util.js", "1"), make_file("src/main.js", "2"))
        assert find_main_file(project) == "src/main.js"

    def test_falls_back_to_first_file(self, tmp_path):
        project = make_project(tmp_path, make_file("app.js", "1"), make_file("b.js", "2"))
        assert find_main_file(project) == "app.js"

    def test_empty_project(self, tmp_path):
        assert find_main_file(make_project(tmp_path)) == "index.js"


class TestNodeRunner:
    def test_plain_node(self, tmp_path):
        project = make_project(tmp_path, make_file("index.js", "1"))
        runner = NodeRunner(node="node-bin-that-does-not-exist")

        assert runner.install_command(project) is None
        assert runner.launch_command(project) == ["node-bin-that-does-not-exist", "index.js"]

    def test_npm_project(self, tmp_path):
        project = make_project(
            tmp_path, make_file("package.json", "{}", Language.JSON), make_file("index.js", "1")
        )
        runner = NodeRunner(npm="npm-bin-that-does-not-exist")

        assert runner.install_command(project) == ["npm-bin-that-does-not-exist", "install"]
        assert runner.launch_command(project) == ["npm-bin-that-does-not-exist", "start"]


def test_deno_runner(tmp_path):
    project = make_project(tmp_path, make_file("index.ts", "1", Language.TYPESCRIPT))
    runner = DenoRunner(deno="deno-bin-that-does-not-exist")

    assert runner.install_command(project) is None
    assert runner.launch_command(project) == [
        "deno-bin-that-does-not-exist",
        "run",
        "--allow-net",
        "index.ts",
    ]


def test_python_runner(tmp_path):
    project = make_project(
        tmp_path,
        make_file("main.py", "print(1)", Language.PYTHON),
        make_file("requirements.txt", "httpx", Language.TEXT),
    )
    runner = PythonRunner(python="py-bin-that-does-not-exist", pip="pip-bin-that-does-not-exist")

    assert runner.install_command(project) == [
        "pip-bin-that-does-not-exist",
        "install",
        "-r",
        "requirements.txt",
    ]
    assert runner.launch_command(project) == ["py-bin-that-does-not-exist", "main.py"]


def test_fallback_runner(tmp_path):
    project = make_project(tmp_path, make_file("index.html", "<p>", Language.HTML), language=Language.TEXT)
    runner = FallbackRunner(node="node-bin-that-does-not-exist")

    assert runner.install_command(project) is None
    assert runner.launch_command(project) == ["node-bin-that-does-not-exist", "index.html"]
    assert runner.skip_reason(project) == "No build step for text projects"
