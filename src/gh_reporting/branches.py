"""Branch selection: bound the number of branches analyzed per repository."""

from __future__ import annotations

from dataclasses import dataclass

from .models import Branch

IMPORTANT_BRANCHES = ("main", "master", "develop", "dev", "staging", "production")


@dataclass(frozen=True)
class BranchPolicy:
    """Which branches to analyze besides the default branch.

    ``names`` is an ordered priority list. With ``include_all`` every branch is
    analyzed and ``names`` is ignored.
    """

    names: tuple[str, ...] = IMPORTANT_BRANCHES
    include_all: bool = False


DEFAULT_POLICY = BranchPolicy()
ALL_BRANCHES = BranchPolicy(names=(), include_all=True)


def select_branches(
    branches: list[Branch],
    default_branch: str,
    policy: BranchPolicy = DEFAULT_POLICY,
) -> list[Branch]:
    """Return the branches to analyze, default branch first.

    In priority mode the rest follow ``policy.names`` order, taking the first
    branch that matches each name. In all-branches mode the rest follow input
    order. A branch name is never selected twice. The result may be empty.
    """
    by_name: dict[str, Branch] = {}
    for branch in branches:
        by_name.setdefault(branch.name, branch)

    order: list[str] = [default_branch]
    if policy.include_all:
        order.extend(by_name)
    else:
        order.extend(policy.names)

    selected: list[Branch] = []
    seen: set[str] = set()
    for name in order:
        if name in seen or name not in by_name:
            continue
        seen.add(name)
        selected.append(by_name[name])
    return selected
