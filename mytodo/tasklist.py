"""Local task list persisted as JSON: {"tasks": [{"content", "done", "comments"}]}."""

import dataclasses
import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Union

logger = logging.getLogger(__name__)


@dataclass
class Task:
    content: str
    done: bool = False
    comments: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Task":
        if not isinstance(data, dict) or not isinstance(data.get("content"), str):
            raise ValueError(f"Invalid task entry: {data!r}")
        comments = data.get("comments") or []
        return cls(
            content=data["content"],
            done=bool(data.get("done", False)),
            comments=[str(c) for c in comments],
        )

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"content": self.content, "done": self.done}
        if self.comments:
            out["comments"] = list(self.comments)
        return out


class TaskList:
    """Ordered tasks bound to one file. Every mutation is saved immediately."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self.tasks: List[Task] = []

    def load(self) -> "TaskList":
        if not self.path.exists():
            self.tasks = []
            return self
        try:
            data = json.loads(self.path.read_text(encoding="utf-8") or "{}")
        except json.JSONDecodeError as e:
            raise ValueError(f"Task file {self.path} is not valid JSON: {e}") from e
        if not isinstance(data, dict):
            raise ValueError(f"Task file {self.path} must hold a JSON object, got {type(data).__name__}")
        self.tasks = [Task.from_dict(t) for t in (data.get("tasks") or [])]
        return self

    def save(self) -> None:
        payload = {"tasks": [t.to_dict() for t in self.tasks]}
        self.path.write_text(json.dumps(payload, indent=2, ensure_ascii=False) + "\n", encoding="utf-8")
        logger.debug("Saved %d tasks to %s", len(self.tasks), self.path)

    def __len__(self) -> int:
        return len(self.tasks)

    def _check(self, index: int) -> None:
        if index < 0 or index >= len(self.tasks):
            raise IndexError(f"Invalid task number {index}; have {len(self.tasks)} tasks")

    def add(self, task: Task) -> None:
        self.tasks.append(task)
        self.save()

    def extend(self, tasks: List[Task]) -> None:
        self.tasks.extend(tasks)
        self.save()

    def remove(self, index: int) -> Task:
        self._check(index)
        task = self.tasks.pop(index)
        self.save()
        return task

    def get(self, index: int) -> Task:
        """A copy; change it through replace()."""
        self._check(index)
        return dataclasses.replace(self.tasks[index], comments=list(self.tasks[index].comments))

    def replace(self, index: int, task: Task) -> None:
        self._check(index)
        self.tasks[index] = task
        self.save()

    def set_done(self, index: int, done: bool = True) -> None:
        task = self.get(index)
        task.done = done
        self.replace(index, task)

    def edit(self, index: int, content: str) -> None:
        task = self.get(index)
        task.content = content
        self.replace(index, task)

    def add_comment(self, index: int, comment: str) -> None:
        self._check(index)
        self.tasks[index].comments.append(comment)
        self.save()

    def all(self) -> List[Task]:
        return [dataclasses.replace(t, comments=list(t.comments)) for t in self.tasks]
