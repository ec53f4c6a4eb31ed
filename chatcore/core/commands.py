from dataclasses import dataclass
from enum import Enum
from typing import Optional


class CommandKind(Enum):
    # 값은 라인 프로토콜의 명령어(verb)와 동일
    CONNECT = "CONNECT"
    DISCONNECT = "QUIT"
    RENAME = "NICK"
    CREATE = "CREATE"
    JOIN = "JOIN"
    INVITE = "INVITE"
    MESSAGE = "PRIVMSG"
    LEAVE = "PART"
    KICK = "KICK"


@dataclass(frozen=True)
class Command:
    """클라이언트 명령 하나.

    kind별로 쓰는 필드가 다릅니다.
      - RENAME: nickname (새 닉네임)
      - CREATE: channel, private
      - INVITE / KICK: channel, nickname (대상 유저)
      - MESSAGE: channel, body
      - JOIN / LEAVE: channel
    """
    kind: CommandKind
    sender_id: int
    channel: Optional[str] = None
    nickname: Optional[str] = None
    body: Optional[str] = None
    private: bool = False

    @property
    def verb(self) -> str:
        return self.kind.value

    @classmethod
    def connect(cls, sender_id):
        return cls(CommandKind.CONNECT, sender_id)

    @classmethod
    def disconnect(cls, sender_id):
        return cls(CommandKind.DISCONNECT, sender_id)

    @classmethod
    def rename(cls, sender_id, new_nickname):
        return cls(CommandKind.RENAME, sender_id, nickname=new_nickname)

    @classmethod
    def create(cls, sender_id, channel, private=False):
        return cls(CommandKind.CREATE, sender_id, channel=channel, private=private)

    @classmethod
    def join(cls, sender_id, channel):
        return cls(CommandKind.JOIN, sender_id, channel=channel)

    @classmethod
    def invite(cls, sender_id, channel, target):
        return cls(CommandKind.INVITE, sender_id, channel=channel, nickname=target)

    @classmethod
    def message(cls, sender_id, channel, body):
        return cls(CommandKind.MESSAGE, sender_id, channel=channel, body=body)

    @classmethod
    def leave(cls, sender_id, channel):
        return cls(CommandKind.LEAVE, sender_id, channel=channel)

    @classmethod
    def kick(cls, sender_id, channel, target):
        return cls(CommandKind.KICK, sender_id, channel=channel, nickname=target)
