from __future__ import annotations

from shipyard.test.architecture._gate import require_arch_checks_enabled
from shipyard.test.architecture._utils import (
    iter_python_files,
    matches_prefix,
    package_root,
    parse_imports,
)


def test_direct_rich_imports_are_limited_to_output() -> None:
    require_arch_checks_enabled()

    root = package_root()
    allowlist = {"output/console.py", "output/report.py"}

    offenders: list[str] = []
    for file_path in iter_python_files(root):
        rel = file_path.relative_to(root)
        if rel.as_posix() in allowlist:
            continue
        for item in parse_imports(file_path):
            if matches_prefix(item.module, "rich"):
                offenders.append(f"{rel}:{item.line}: direct rich import '{item.module}'")

    assert not offenders, "Direct rich usage policy violations:\n" + "\n".join(offenders)
