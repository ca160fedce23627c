"""
Usage report data model and its text and CSV renderings.

A Report is an immutable value: rendering the same Report always yields the
same text, byte for byte.
"""

import csv
import io
from dataclasses import dataclass
from typing import Tuple

CSV_HEADER = [
    "org_name",
    "org_quota_mb",
    "org_used_mb",
    "space_name",
    "app_memory_mb",
    "app_instances",
    "app_total_mb",
    "app_running",
    "service_instances",
]


def percent(used: int, total: int) -> str:
    """Convert a used/total ratio into a percentage string."""
    return f"{(used / total * 100):.2f}%" if total else "N/A"


@dataclass(frozen=True)
class App:
    ram: int
    instances: int
    running: bool

    @property
    def total_memory(self) -> int:
        return self.ram * self.instances

    @property
    def committed_memory(self) -> int:
        return self.total_memory if self.running else 0


@dataclass(frozen=True)
class ServiceInstance:
    name: str


@dataclass(frozen=True)
class Space:
    name: str
    apps: Tuple[App, ...] = ()
    service_instances: Tuple[ServiceInstance, ...] = ()

    @property
    def committed_memory(self) -> int:
        return sum(app.committed_memory for app in self.apps)

    @property
    def running_apps(self) -> int:
        return sum(1 for app in self.apps if app.running)

    def service_instance_names(self) -> list:
        return [si.name for si in self.service_instances]

    def text_lines(self) -> list:
        lines = [
            f"  Space '{self.name}':",
            f"    Committed: {self.committed_memory} MB",
            f"    Apps: {len(self.apps)} ({self.running_apps} running)",
        ]

        labels = [f"App {i}:" for i in range(1, len(self.apps) + 1)]
        label_width = max((len(label) for label in labels), default=0)
        ram_width = max((len(str(app.ram)) for app in self.apps), default=1)
        instances_width = max((len(str(app.instances)) for app in self.apps), default=1)
        total_width = max((len(str(app.total_memory)) for app in self.apps), default=1)
        for label, app in zip(labels, self.apps):
            state = "running" if app.running else "stopped"
            lines.append(
                f"    {label.ljust(label_width)} "
                f"{app.ram:>{ram_width}} MB x {app.instances:>{instances_width}} "
                f"= {app.total_memory:>{total_width}} MB ({state})"
            )

        names = ", ".join(self.service_instance_names()) or "none"
        lines.append(f"    Service instances: {names}")
        return lines


@dataclass(frozen=True)
class Org:
    name: str
    memory_quota: int
    memory_usage: int
    spaces: Tuple[Space, ...] = ()

    @property
    def committed_memory(self) -> int:
        return sum(space.committed_memory for space in self.spaces)

    @property
    def app_count(self) -> int:
        return sum(len(space.apps) for space in self.spaces)

    @property
    def running_apps(self) -> int:
        return sum(space.running_apps for space in self.spaces)

    @property
    def percent_used(self) -> str:
        return percent(self.memory_usage, self.memory_quota)

    def text_lines(self) -> list:
        lines = [
            f"Org '{self.name}'",
            f"  Quota: {self.memory_quota} MB",
            f"  Used: {self.memory_usage} MB ({self.percent_used})",
            f"  Committed: {self.committed_memory} MB",
            f"  Apps: {self.app_count} ({self.running_apps} running)",
        ]
        for space in self.spaces:
            lines.extend(space.text_lines())
        return lines

    def csv_rows(self) -> list:
        org_columns = [self.name, self.memory_quota, self.memory_usage]
        if not self.spaces:
            return [org_columns + [""] * 6]

        rows = []
        for space in self.spaces:
            service_instances = ";".join(space.service_instance_names())
            if not space.apps:
                rows.append(org_columns + [space.name, "", "", "", "", service_instances])
                continue
            for app in space.apps:
                rows.append(
                    org_columns
                    + [
                        space.name,
                        app.ram,
                        app.instances,
                        app.total_memory,
                        "true" if app.running else "false",
                        service_instances,
                    ]
                )
        return rows


@dataclass(frozen=True)
class Report:
    orgs: Tuple[Org, ...] = ()

    def to_text(self) -> str:
        lines = []
        for org in self.orgs:
            lines.extend(org.text_lines())
        return "".join(line + "\n" for line in lines)

    def to_csv(self) -> str:
        out = io.StringIO()
        writer = csv.writer(out, lineterminator="\n")
        writer.writerow(CSV_HEADER)
        for org in self.orgs:
            writer.writerows(org.csv_rows())
        return out.getvalue()

    def __str__(self) -> str:
        return self.to_text()
