"""
Yes/no questions asked during installation.

Stages never read the terminal directly. They ask a Prompter, so a run can
be driven either interactively (ClickPrompter) or from canned answers
(ScriptedPrompter).
"""
import logging
from dataclasses import dataclass
from typing import Dict, Optional

import click

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Question:
    key: str
    text: str
    default: bool = False


LOW_STORAGE = 'low_storage'
OVERWRITE_INSTALL_DIR = 'overwrite_install_dir'
CREATE_SERVICES = 'create_services'
START_SERVICES = 'start_services'
ENABLE_LINGER = 'enable_linger'


def low_storage_question(free_gb: int, required_gb: int) -> Question:
    return Question(
        LOW_STORAGE,
        f"Only {free_gb} GB of free storage detected ({required_gb} GB recommended). Continue anyway?",
    )


def overwrite_question(install_root) -> Question:
    return Question(
        OVERWRITE_INSTALL_DIR,
        f"Directory {install_root} already exists. Delete contents and continue?",
    )


CREATE_SERVICES_QUESTION = Question(
    CREATE_SERVICES,
    "Do you want to create systemd services for gzond and beacon-chain?",
)
START_SERVICES_QUESTION = Question(
    START_SERVICES,
    "Enable and start gzond.service and beacon-chain.service now?",
)
ENABLE_LINGER_QUESTION = Question(
    ENABLE_LINGER,
    "Enable user lingering (loginctl enable-linger $USER) so services can run after reboot "
    "without a user login? This requires sudo.",
)


class Prompter:
    """Answers yes/no questions."""

    def confirm(self, question: Question) -> bool:
        raise NotImplementedError


class ClickPrompter(Prompter):
    """Asks on the terminal; an empty answer takes the question's default."""

    def confirm(self, question: Question) -> bool:
        answer = click.confirm(question.text, default=question.default)
        logger.debug(f"{question.key}: {answer}")
        return answer


class ScriptedPrompter(Prompter):
    """
    Answers from a fixed mapping of question key to bool. Questions missing
    from the mapping get their default. Every question asked is recorded.
    """

    def __init__(self, answers: Optional[Dict[str, bool]] = None):
        self.answers = dict(answers or {})
        self.asked = []

    def confirm(self, question: Question) -> bool:
        self.asked.append(question.key)
        answer = self.answers.get(question.key, question.default)
        click.echo(f"{question.text} [{'y' if answer else 'n'}]")
        return answer
