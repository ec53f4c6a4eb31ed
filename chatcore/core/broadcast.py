from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional, Tuple

from chatcore.core.commands import Command


class ServerError(Enum):
    # (numeric reply code, message)
    INVALID_NAME = (432, "Erroneous name")
    NAME_IN_USE = (433, "Nickname is already in use")
    CHANNEL_EXISTS = (437, "Channel already exists")
    NO_SUCH_CHANNEL = (403, "No such channel")
    NO_SUCH_USER = (401, "No such nick")
    NOT_OWNER = (482, "You're not channel owner")
    NOT_IN_CHANNEL = (442, "Not on that channel")
    JOIN_PRIVATE_CHANNEL = (473, "Cannot join channel (+i)")
    INVITE_TO_PUBLIC_CHANNEL = (476, "Channel is not invite-only")

    @property
    def code(self) -> int:
        return self.value[0]

    @property
    def message(self) -> str:
        return self.value[1]


class BroadcastKind(Enum):
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"
    OKAY = "okay"
    NAMES = "names"
    ERROR = "error"


def _sorted(names: Iterable[str]) -> Tuple[str, ...]:
    return tuple(sorted(names))


@dataclass(frozen=True)
class Broadcast:
    """명령 처리 결과: 누구에게 어떤 이벤트를 알려야 하는지.

    recipients, members, channels 는 항상 정렬된 tuple 입니다.
    sender 는 명령 처리 시점(변경 전)의 보낸 사람 닉네임입니다.
    """
    kind: BroadcastKind
    command: Optional[Command]
    recipients: Tuple[str, ...] = ()
    sender: Optional[str] = None
    error: Optional[ServerError] = None
    nickname: Optional[str] = None
    members: Tuple[str, ...] = ()
    owner: Optional[str] = None
    channels: Tuple[str, ...] = ()

    @property
    def is_error(self) -> bool:
        return self.kind is BroadcastKind.ERROR

    @classmethod
    def connected(cls, command, nickname):
        return cls(BroadcastKind.CONNECTED, command, recipients=(nickname,), nickname=nickname)

    @classmethod
    def disconnected(cls, command, nickname, recipients, channels=()):
        return cls(
            BroadcastKind.DISCONNECTED,
            command,
            recipients=_sorted(recipients),
            sender=nickname,
            nickname=nickname,
            channels=_sorted(channels),
        )

    @classmethod
    def okay(cls, command, sender, recipients):
        return cls(BroadcastKind.OKAY, command, recipients=_sorted(recipients), sender=sender)

    @classmethod
    def names(cls, command, sender, members, owner):
        members = _sorted(members)
        return cls(BroadcastKind.NAMES, command, recipients=members, sender=sender, members=members, owner=owner)

    @classmethod
    def error_to(cls, command, error, sender=None):
        """에러는 명령을 보낸 사람에게만 전달 (등록되지 않은 ID면 수신자 없음)"""
        recipients = (sender,) if sender is not None else ()
        return cls(BroadcastKind.ERROR, command, recipients=recipients, sender=sender, error=error)
