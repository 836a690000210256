"""
branch.py

Responsibility: Resolve the tip of the publish branch, creating the branch
from the base branch when it does not exist yet.

Losing a creation race to a concurrent publisher is not an error: the branch
that won is re-read and used as-is.
"""

from __future__ import annotations

import logging

from treepub.store import BranchState, ObjectStore, RefAlreadyExists, RefNotFound

logger = logging.getLogger(__name__)


def ensure_branch(store: ObjectStore, name: str) -> BranchState:
    try:
        return BranchState(name=name, tip_commit_id=store.get_ref(name))
    except RefNotFound:
        logger.info("Branch %s does not exist; bootstrapping from base branch", name)

    try:
        base_tip = store.get_default_branch_tip()
    except RefNotFound:
        # Empty repository: the first commit will create the branch.
        logger.info("Base branch has no commits; %s will start without a parent", name)
        return BranchState(name=name, tip_commit_id=None)

    try:
        store.create_ref(name, base_tip)
    except RefAlreadyExists:
        logger.info("Branch %s was created concurrently; using its current tip", name)
        return BranchState(name=name, tip_commit_id=store.get_ref(name))

    logger.info("Created branch %s at %s", name, base_tip)
    return BranchState(name=name, tip_commit_id=base_tip)
