import json
import re
import subprocess
from pathlib import Path
from unittest import mock

import pytest

from drillrunner.cli import find_exercise, list_lines, main
from drillrunner.exercise import load_exercises

DOES_NOT_COMPILE = "// fake: does not compile"

SUCCESS_FILES = {
    "compSuccess.rs": "fn main() {\n}\n",
    "testSuccess.rs": (
        "#[test]\nfn passing() {\n"
        '    println!("THIS TEST TOO SHALL PASS");\n'
        "    assert!(true);\n}\n"
    ),
}
SUCCESS_ENTRIES = [
    ("compSuccess", "compSuccess.rs", "compile", ""),
    ("testSuccess", "testSuccess.rs", "test", ""),
]

FAILURE_FILES = {
    "compFailure.rs": f"{DOES_NOT_COMPILE}\nfn main() {{\n    let\n}}\n",
    "compNoExercise.rs": "fn main() {\n}\n",
    "testFailure.rs": f"{DOES_NOT_COMPILE}\n#[test]\nfn passing() {{\n    asset!(true);\n}}\n",
    "testNotPassed.rs": "#[test]\nfn not_passing() {\n    assert!(false);\n}\n",
}
FAILURE_ENTRIES = [
    ("compFailure", "compFailure.rs", "compile", ""),
    ("testFailure", "testFailure.rs", "test", "Hello!"),
    ("testNotPassed", "testNotPassed.rs", "test", ""),
]

STATE_FILES = {
    "finished_exercise.rs": "// fake_exercise\n\nfn main() {\n\n}\n",
    "pending_exercise.rs": "// fake_exercise\n\n// I AM NOT DONE\n\nfn main() {\n\n}\n",
    "pending_test_exercise.rs": "// I AM NOT DONE\n\n#[test]\nfn it_works() {}\n",
}
STATE_ENTRIES = [
    ("finished_exercise", "finished_exercise.rs", "compile", ""),
    ("pending_exercise", "pending_exercise.rs", "compile", ""),
    ("pending_test_exercise", "pending_test_exercise.rs", "test", ""),
]


class FakeToolchain:
    """Stands in for rustc and the binaries it builds."""

    def __init__(self):
        self.built = {}
        self.popen_calls = []

    def run(self, args, **kwargs):
        args = [str(a) for a in args]
        program = args[0]
        if program == "rustc":
            if "--version" in args:
                return subprocess.CompletedProcess(args, 0, b"", b"")
            source = next(a for a in args if a.endswith(".rs"))
            text = Path(source).read_text()
            if DOES_NOT_COMPILE in text:
                return subprocess.CompletedProcess(args, 1, b"", b"error: expected pattern\n")
            self.built[args[args.index("-o") + 1]] = text
            return subprocess.CompletedProcess(args, 0, b"", b"")
        if program in self.built:
            text = self.built[program]
            out = "".join(f"{m}\n" for m in re.findall(r'println!\("([^"]*)"\)', text))
            code = 101 if "assert!(false)" in text else 0
            return subprocess.CompletedProcess(args, code, out.encode(), b"")
        raise FileNotFoundError(program)

    def popen(self, args, **kwargs):
        self.popen_calls.append([str(a) for a in args])
        return mock.MagicMock()


@pytest.fixture
def toolchain(monkeypatch):
    fake = FakeToolchain()
    monkeypatch.setattr(subprocess, "run", fake.run)
    monkeypatch.setattr(subprocess, "Popen", fake.popen)
    return fake


def make_project(root, files, entries):
    for name, content in files.items():
        path = root / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content)
    blocks = [
        "[[exercises]]\n"
        f"name = {json.dumps(name)}\npath = {json.dumps(path)}\n"
        f"mode = {json.dumps(mode)}\nhint = {json.dumps(hint)}\n"
        for name, path, mode, hint in entries
    ]
    (root / "info.toml").write_text("\n".join(blocks))


@pytest.fixture
def success_dir(tmp_path, monkeypatch, toolchain):
    make_project(tmp_path, SUCCESS_FILES, SUCCESS_ENTRIES)
    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.fixture
def failure_dir(tmp_path, monkeypatch, toolchain):
    make_project(tmp_path, FAILURE_FILES, FAILURE_ENTRIES)
    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.fixture
def state_dir(tmp_path, monkeypatch, toolchain):
    make_project(tmp_path, STATE_FILES, STATE_ENTRIES)
    monkeypatch.chdir(tmp_path)
    return tmp_path


def test_version(capsys):
    assert main(["--version"]) == 0
    assert capsys.readouterr().out == "v5.5.1\n"


def test_runs_without_arguments(success_dir):
    assert main([]) == 0


def test_fails_when_in_wrong_dir(tmp_path, monkeypatch, toolchain):
    monkeypatch.chdir(tmp_path)
    assert main([]) == 1


def test_fails_without_rustc(success_dir, monkeypatch, capsys):
    def missing(args, **kwargs):
        raise FileNotFoundError(args[0])

    monkeypatch.setattr(subprocess, "run", missing)
    assert main(["verify"]) == 1
    assert "We cannot find `rustc`." in capsys.readouterr().out


def test_verify_all_success(success_dir):
    assert main(["verify"]) == 0


def test_verify_fails_if_some_fails(failure_dir):
    assert main(["verify"]) == 1


def test_run_single_compile_success(success_dir):
    assert main(["run", "compSuccess"]) == 0


def test_run_single_compile_failure(failure_dir):
    assert main(["run", "compFailure"]) == 1


def test_run_single_test_success(success_dir):
    assert main(["run", "testSuccess"]) == 0


def test_run_single_test_failure(failure_dir):
    assert main(["run", "testFailure"]) == 1


def test_run_single_test_not_passed(failure_dir):
    assert main(["run", "testNotPassed.rs"]) == 1


def test_run_single_test_not_passed_by_name(failure_dir):
    assert main(["run", "testNotPassed"]) == 1


def test_run_single_test_no_filename(success_dir):
    assert main(["run"]) == 1


def test_run_single_test_no_exercise(failure_dir, capsys):
    assert main(["run", "compNoExercise.rs"]) == 1
    assert "No exercise found for 'compNoExercise.rs'!" in capsys.readouterr().out


def test_reset_single_exercise(tmp_path, monkeypatch, toolchain):
    make_project(
        tmp_path,
        {"exercises/intro1.rs": "fn main() {}\n"},
        [("intro1", "exercises/intro1.rs", "compile", "")],
    )
    monkeypatch.chdir(tmp_path)
    assert main(["reset", "intro1"]) == 0
    assert toolchain.popen_calls == [["git", "stash", "--", str(Path("exercises/intro1.rs"))]]


def test_reset_no_exercise(success_dir, capsys):
    assert main(["reset"]) == 1
    assert "positional arguments not provided" in capsys.readouterr().err


def test_get_hint_for_single_test(failure_dir, capsys):
    assert main(["hint", "testFailure"]) == 0
    assert capsys.readouterr().out == "Hello!\n"


def test_run_compile_exercise_does_not_prompt(state_dir, capsys):
    assert main(["run", "pending_exercise"]) == 0
    assert "I AM NOT DONE" not in capsys.readouterr().out


def test_run_test_exercise_does_not_prompt(state_dir, capsys):
    assert main(["run", "pending_test_exercise"]) == 0
    assert "I AM NOT DONE" not in capsys.readouterr().out


def test_run_single_test_success_with_output(success_dir, capsys):
    assert main(["--nocapture", "run", "testSuccess"]) == 0
    assert "THIS TEST TOO SHALL PASS" in capsys.readouterr().out


def test_run_single_test_success_without_output(success_dir, capsys):
    assert main(["run", "testSuccess"]) == 0
    assert "THIS TEST TOO SHALL PASS" not in capsys.readouterr().out


def test_list(success_dir, capsys):
    assert main(["list"]) == 0
    out = capsys.readouterr().out
    assert "Pending" not in out
    assert "compSuccess" in out


def test_list_both_done_and_pending(state_dir, capsys):
    assert main(["list"]) == 0
    out = capsys.readouterr().out
    assert "Done" in out and "Pending" in out


def test_list_without_pending(state_dir, capsys):
    assert main(["list", "--solved"]) == 0
    assert "Pending" not in capsys.readouterr().out


def test_list_without_done(state_dir, capsys):
    assert main(["list", "--unsolved"]) == 0
    assert "Done" not in capsys.readouterr().out


def test_list_lines_default(state_dir):
    lines = list_lines(load_exercises("info.toml"))
    assert lines[0] == f"{'Name':<17}\t{'Path':<46}\t{'Status':<7}"
    assert lines[1] == f"{'finished_exercise':<17}\t{'finished_exercise.rs':<46}\t{'Done':<7}"
    assert lines[-1] == "Progress: You completed 1 / 3 exercises (33.3 %)."
    assert len(lines) == 5


def test_list_lines_names_and_filter(state_dir):
    exercises = load_exercises("info.toml")
    lines = list_lines(exercises, names=True, filter_text="PENDING")
    assert lines[:-1] == ["pending_exercise", "pending_test_exercise"]


def test_list_lines_paths_solved(state_dir):
    lines = list_lines(load_exercises("info.toml"), paths=True, solved=True)
    assert lines[:-1] == ["finished_exercise.rs"]


def test_list_lines_filter_matches_nothing(state_dir):
    lines = list_lines(load_exercises("info.toml"), filter_text="zzz")
    assert len(lines) == 2


def test_find_exercise(state_dir):
    exercises = load_exercises("info.toml")
    assert find_exercise("pending_test_exercise", exercises).name == "pending_test_exercise"
    assert find_exercise("next", exercises).name == "pending_exercise"


def test_find_exercise_missing(state_dir):
    with pytest.raises(LookupError, match="No exercise found for 'nope'!"):
        find_exercise("nope", load_exercises("info.toml"))


def test_find_next_when_all_done(success_dir):
    with pytest.raises(LookupError, match="Congratulations"):
        find_exercise("next", load_exercises("info.toml"))


def test_cicvverify_writes_report(success_dir):
    assert main(["--nocapture", "cicvverify"]) == 0
    report = json.loads((success_dir / ".github/result/check_result.json").read_text())
    assert report["statistics"]["total_exercations"] == 2
    assert report["statistics"]["total_succeeds"] == 2
    assert report["statistics"]["total_failures"] == 0


def test_lsp_writes_project(tmp_path, monkeypatch, toolchain):
    make_project(
        tmp_path,
        {"exercises/intro1.rs": "fn main() {}\n"},
        [("intro1", "exercises/intro1.rs", "compile", "")],
    )
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("RUST_SRC_PATH", "/opt/src")
    assert main(["lsp"]) == 0
    project = json.loads((tmp_path / "rust-project.json").read_text())
    assert project["sysroot_src"] == "/opt/src"
    assert [c["root_module"] for c in project["crates"]] == [str(Path("exercises/intro1.rs"))]