"""Batch checking of all exercises and the JSON result report."""

from __future__ import annotations

import json
import os
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import asdict, dataclass, field
from pathlib import Path

from .exercise import Exercise
from .run import run
from .verify import VerificationError

REPORT_PATH = ".github/result/check_result.json"


@dataclass
class ExerciseResult:
    """Outcome of checking one exercise."""

    name: str
    result: bool


@dataclass
class ExerciseStatistics:
    """Totals over a batch check."""

    total_exercations: int = 0
    total_succeeds: int = 0
    total_failures: int = 0
    total_time: int = 0


@dataclass
class ExerciseCheckList:
    """All results of a batch check with their statistics."""

    exercises: list[ExerciseResult] = field(default_factory=list)
    user_name: str | None = None
    statistics: ExerciseStatistics = field(default_factory=ExerciseStatistics)

    def record(self, name: str, result: bool) -> None:
        """Add an exercise result and count it."""
        self.exercises.append(ExerciseResult(name=name, result=result))
        if result:
            self.statistics.total_succeeds += 1
        else:
            self.statistics.total_failures += 1

    def to_dict(self) -> dict:
        return {
            "exercises": [asdict(entry) for entry in self.exercises],
            "user_name": self.user_name,
            "statistics": asdict(self.statistics),
        }

    def to_json(self) -> str:
        """Return the report as indented JSON."""
        return json.dumps(self.to_dict(), indent=2, ensure_ascii=False)


def check_all(exercises: list[Exercise], verbose: bool = True) -> ExerciseCheckList:
    """Run every exercise concurrently and collect the results."""
    started = int(time.time())
    total = len(exercises)
    check_list = ExerciseCheckList(statistics=ExerciseStatistics(total_exercations=total))
    lock = threading.Lock()
    rights = 0

    def check(exercise: Exercise) -> None:
        nonlocal rights
        task_started = int(time.time())
        try:
            run(exercise, verbose)
            passed = True
        except VerificationError:
            passed = False
        with lock:
            if passed:
                rights += 1
                print(f"{exercise.name}执行成功")
            else:
                print(f"{exercise.name}执行失败")
            print(f"总的题目数: {total}")
            print(f"当前做正确的题目数: {rights}")
            print(f"当前修改试卷耗时: {int(time.time()) - task_started} s")
            check_list.record(exercise.name, passed)

    with ThreadPoolExecutor() as pool:
        futures = [pool.submit(check, exercise) for exercise in exercises]
        for future in futures:
            future.result()

    total_time = int(time.time()) - started
    print(
        "===============================试卷批改完成,总耗时: "
        f"{total_time} s; =================================="
    )
    check_list.statistics.total_time = total_time
    return check_list


def write_report(
    check_list: ExerciseCheckList, path: str | os.PathLike = REPORT_PATH
) -> None:
    """Write the check list as JSON to the report file."""
    Path(path).write_text(check_list.to_json(), encoding="utf-8")