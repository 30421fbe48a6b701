"""
Stage outcomes consumed by the installer driver.
"""
from dataclasses import dataclass
from enum import Enum


class Outcome(Enum):
    SUCCESS = 'success'
    FATAL = 'fatal'
    DECLINED = 'declined'


@dataclass
class StageResult:
    """Result of a single installer stage"""
    outcome: Outcome
    message: str = ''
    exit_code: int = 0

    @property
    def ok(self) -> bool:
        return self.outcome is Outcome.SUCCESS

    @classmethod
    def success(cls, message: str = '') -> 'StageResult':
        return cls(Outcome.SUCCESS, message, 0)

    @classmethod
    def fatal(cls, message: str, exit_code: int = 1) -> 'StageResult':
        return cls(Outcome.FATAL, message, exit_code)

    @classmethod
    def declined(cls, message: str, exit_code: int = 0) -> 'StageResult':
        return cls(Outcome.DECLINED, message, exit_code)
