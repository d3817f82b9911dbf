# drillrunner

A command-line companion for working through a set of small Rust exercises.
It compiles and runs each exercise with `rustc` (or `cargo` for Clippy and
build-script exercises), reports compiler and test output, shows hints, and
watches your files so it can move on as soon as an exercise is solved.

An exercise counts as finished once it builds, runs or passes its tests, and
its `// I AM NOT DONE` marker has been removed from the source.

## Requirements

- Python 3.11 or later
- A Rust toolchain with `rustc` on your `PATH` (`cargo` for Clippy and
  build-script exercises, `git` for `reset`)
- An `info.toml` in the current directory listing the exercises

## The exercise list

`info.toml` holds an array of `[[exercises]]` tables, each with these fields:

```toml
[[exercises]]
name = "vecs1"
path = "exercises/vecs/vecs1.rs"
mode = "test"          # one of: compile, test, clippy, buildscript
hint = "Look at the vec! macro."
```

- `compile` builds the file with `rustc` and runs the binary.
- `test` builds it as a test harness and runs the tests.
- `clippy` writes `exercises/clippy/Cargo.toml` and lints with `cargo clippy`.
- `buildscript` writes `exercises/tests/Cargo.toml` and runs `cargo test`.

## Installation

```
pip install .
```

## Usage

Run every command from the directory that holds `info.toml`.

```
drillrunner                 # welcome text and a short introduction
drillrunner -v              # print the version
drillrunner watch           # verify in order, re-run whenever a file changes
drillrunner verify          # verify all exercises once, in order
drillrunner run NAME        # compile and run (or test) one exercise
drillrunner run next        # run the first exercise not yet done
drillrunner hint NAME       # print the hint for an exercise
drillrunner reset NAME      # stash your changes to an exercise with git
drillrunner list            # table of names, paths and Done/Pending status
drillrunner lsp             # write rust-project.json for rust-analyzer
drillrunner cicvverify      # check every exercise, write a JSON report
```

Useful options:

- `--nocapture` shows the output of test exercises.
- `watch --success-hints` shows the hint when an exercise passes but is still
  marked as not done.
- `list -p` / `list -n` print only paths / only names; `list -f a,b` filters
  by comma-separated patterns matched against names and paths; `list -s`
  shows only solved and `list -u` only unsolved exercises. The listing ends
  with a progress summary.

The command exits with status 1 when `info.toml` or `rustc` cannot be found,
when an exercise name is unknown, or when `run` or `verify` fails.

### Watch mode

Watch mode observes the `./exercises` directory. When a `.rs` file changes,
the changed exercise is checked first, then every other pending exercise.
While watching, type one of these commands and press Enter:

| command  | effect                                             |
|----------|----------------------------------------------------|
| `hint`   | show the hint for the current exercise             |
| `clear`  | clear the screen                                   |
| `quit`   | leave watch mode                                   |
| `!cmd`   | run a command, e.g. `!rustc --explain E0381`       |
| `help`   | list these commands                                |

### Checking report

`drillrunner cicvverify` runs every exercise concurrently, prints progress as
each one finishes, and writes `.github/result/check_result.json` with each
exercise's result plus totals of successes, failures and elapsed seconds.

### rust-analyzer support

`drillrunner lsp` adds a crate for every `.rs` file below `./exercises` and
writes `rust-project.json`. The sysroot sources come from `RUST_SRC_PATH` if
set, otherwise from `rustc --print sysroot`.

### Environment

Set `NO_EMOJI` to replace emoji in messages with plain characters.

## Using it as a library

- `drillrunner.exercise.load_exercises(path)` reads `info.toml` into
  `Exercise` objects; `Exercise.state()` and `Exercise.looks_done()` report
  whether the marker is still present, and `Exercise.compile()` returns a
  `CompiledExercise` (raising `CompileError` on failure).
- `drillrunner.verify.verify(exercises, progress, verbose, success_hints)`
  raises `ExerciseFailed` at the first unfinished exercise.
- `drillrunner.run.run(exercise, verbose)` raises `VerificationError` on
  failure.
- `drillrunner.checklist.check_all(exercises, verbose)` returns an
  `ExerciseCheckList`, and `write_report(check_list, path)` saves it as JSON.

## What it does not do

drillrunner ships no exercises of its own: it needs an `info.toml` and the
exercise files it points to. Progress is not stored anywhere; whether an
exercise is done is read from its source file each time.

## Running the tests

```
pip install ".[test]"
pytest
```