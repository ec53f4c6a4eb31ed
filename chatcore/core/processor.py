import threading
from typing import Iterable, Optional, Set

from chatcore.core.broadcast import Broadcast, ServerError
from chatcore.core.channel_registry import ChannelRegistry
from chatcore.core.commands import Command, CommandKind
from chatcore.core.names import is_valid_name
from chatcore.core.user_registry import UserRegistry
from chatcore.utils.logger import get_logger

logger = get_logger("CommandProcessor")


class CommandProcessor:
    """유저/채널 레지스트리에 대한 상태 머신.

    명령 하나를 락 안에서 검사 -> 변경 순서로 끝까지 처리하고 Broadcast를 돌려줍니다.
    검사는 정해진 순서대로 하며, 실패하면 레지스트리는 전혀 바뀌지 않습니다.
    네트워크 I/O는 하지 않습니다.
    """

    def __init__(self, users: Optional[UserRegistry] = None, channels: Optional[ChannelRegistry] = None):
        self.users = users if users is not None else UserRegistry()
        self.channels = channels if channels is not None else ChannelRegistry()
        self.lock = threading.Lock()

        self._handlers = {
            CommandKind.CONNECT: self._connect,
            CommandKind.DISCONNECT: self._disconnect,
            CommandKind.RENAME: self._rename,
            CommandKind.CREATE: self._create,
            CommandKind.JOIN: self._join,
            CommandKind.INVITE: self._invite,
            CommandKind.MESSAGE: self._message,
            CommandKind.LEAVE: self._leave,
            CommandKind.KICK: self._kick,
        }
        missing = set(CommandKind) - set(self._handlers)
        if missing:
            raise RuntimeError(f"No handler for {sorted(k.name for k in missing)}")

    def process(self, command: Command) -> Broadcast:
        with self.lock:
            result = self._handlers[command.kind](command)

        if result.is_error:
            logger.debug(f"{command.verb} from {command.sender_id} rejected: {result.error.name}")
        else:
            logger.info(f"{command.verb} from {command.sender_id} ok -> {len(result.recipients)} recipient(s)")
        return result

    # ------------------------------------------------------------------
    # Queries (락 안에서 복사본 반환)
    # ------------------------------------------------------------------
    def lookup_id(self, nickname):
        with self.lock:
            return self.users.lookup_id(nickname)

    def lookup_nickname(self, user_id):
        with self.lock:
            return self.users.lookup_nickname(user_id)

    def registered_users(self) -> Set[str]:
        with self.lock:
            return self.users.all_nicknames()

    def channel_names(self) -> Set[str]:
        with self.lock:
            return self.channels.all_channel_names()

    def channel_members(self, name) -> Set[str]:
        """채널 멤버 닉네임 (채널이 없으면 빈 set)"""
        with self.lock:
            channel = self.channels.find(name)
            if channel is None:
                return set()
            return self._nicks(channel.members())

    def channel_owner(self, name) -> Optional[str]:
        with self.lock:
            channel = self.channels.find(name)
            if channel is None:
                return None
            return self.users.lookup_nickname(channel.owner)

    # ------------------------------------------------------------------
    # Helpers (락을 잡은 상태에서만 호출)
    # ------------------------------------------------------------------
    def _nicks(self, user_ids: Iterable[int]) -> Set[str]:
        nicks = set()
        for uid in user_ids:
            nick = self.users.lookup_nickname(uid)
            if nick is not None:
                nicks.add(nick)
        return nicks

    def _neighbours(self, user_id) -> Set[str]:
        """user_id와 채널을 하나라도 공유하는 모든 유저 닉네임 (본인 포함)"""
        nicks = set()
        for channel in self.channels.channels_with_member(user_id):
            nicks |= self._nicks(channel.members())
        return nicks

    # ------------------------------------------------------------------
    # Command handlers
    # ------------------------------------------------------------------
    def _connect(self, command):
        nickname = self.users.register(command.sender_id)
        return Broadcast.connected(command, nickname)

    def _disconnect(self, command):
        nickname = self.users.lookup_nickname(command.sender_id)
        if nickname is None:
            return Broadcast.error_to(command, ServerError.NO_SUCH_USER)

        recipients = set()
        left = []
        for channel in self.channels.channels_with_member(command.sender_id):
            recipients |= self._nicks(channel.members())
            left.append(channel.name)
            if channel.is_owner(command.sender_id):
                # 방장이 나가면 채널 자체가 사라짐
                self.channels.remove(channel.name)
            else:
                channel.remove_member(command.sender_id)

        self.users.deregister(command.sender_id)
        recipients.discard(nickname)
        return Broadcast.disconnected(command, nickname, recipients, left)

    def _rename(self, command):
        sender = self.users.lookup_nickname(command.sender_id)
        if sender is None:
            return Broadcast.error_to(command, ServerError.NO_SUCH_USER)
        if not is_valid_name(command.nickname):
            return Broadcast.error_to(command, ServerError.INVALID_NAME, sender)
        if not self.users.rename(command.sender_id, command.nickname):
            return Broadcast.error_to(command, ServerError.NAME_IN_USE, sender)

        recipients = self._neighbours(command.sender_id)
        recipients.add(command.nickname)
        return Broadcast.okay(command, sender, recipients)

    def _create(self, command):
        sender = self.users.lookup_nickname(command.sender_id)
        if sender is None:
            return Broadcast.error_to(command, ServerError.NO_SUCH_USER)
        if not is_valid_name(command.channel):
            return Broadcast.error_to(command, ServerError.INVALID_NAME, sender)
        if self.channels.create(command.channel, command.sender_id, command.private) is None:
            return Broadcast.error_to(command, ServerError.CHANNEL_EXISTS, sender)

        return Broadcast.okay(command, sender, {sender})

    def _join(self, command):
        sender = self.users.lookup_nickname(command.sender_id)
        if sender is None:
            return Broadcast.error_to(command, ServerError.NO_SUCH_USER)
        channel = self.channels.find(command.channel)
        if channel is None:
            return Broadcast.error_to(command, ServerError.NO_SUCH_CHANNEL, sender)
        if channel.is_private():
            return Broadcast.error_to(command, ServerError.JOIN_PRIVATE_CHANNEL, sender)

        channel.add_member(command.sender_id)
        owner = self.users.lookup_nickname(channel.owner)
        return Broadcast.names(command, sender, self._nicks(channel.members()), owner)

    def _invite(self, command):
        sender = self.users.lookup_nickname(command.sender_id)
        if sender is None:
            return Broadcast.error_to(command, ServerError.NO_SUCH_USER)
        channel = self.channels.find(command.channel)
        if channel is None:
            return Broadcast.error_to(command, ServerError.NO_SUCH_CHANNEL, sender)
        target_id = self.users.lookup_id(command.nickname)
        if target_id is None:
            return Broadcast.error_to(command, ServerError.NO_SUCH_USER, sender)
        if not channel.is_owner(command.sender_id):
            return Broadcast.error_to(command, ServerError.NOT_OWNER, sender)
        if not channel.is_private():
            return Broadcast.error_to(command, ServerError.INVITE_TO_PUBLIC_CHANNEL, sender)

        channel.add_member(target_id)
        owner = self.users.lookup_nickname(channel.owner)
        return Broadcast.names(command, sender, self._nicks(channel.members()), owner)

    def _message(self, command):
        sender = self.users.lookup_nickname(command.sender_id)
        if sender is None:
            return Broadcast.error_to(command, ServerError.NO_SUCH_USER)
        channel = self.channels.find(command.channel)
        if channel is None:
            return Broadcast.error_to(command, ServerError.NO_SUCH_CHANNEL, sender)
        if command.sender_id not in channel:
            return Broadcast.error_to(command, ServerError.NOT_IN_CHANNEL, sender)

        return Broadcast.okay(command, sender, self._nicks(channel.members()))

    def _leave(self, command):
        sender = self.users.lookup_nickname(command.sender_id)
        if sender is None:
            return Broadcast.error_to(command, ServerError.NO_SUCH_USER)
        channel = self.channels.find(command.channel)
        if channel is None:
            return Broadcast.error_to(command, ServerError.NO_SUCH_CHANNEL, sender)
        if command.sender_id not in channel:
            return Broadcast.error_to(command, ServerError.NOT_IN_CHANNEL, sender)

        # 나가는 사람도 알림을 받도록 변경 전 멤버 기준
        recipients = self._nicks(channel.members())
        if channel.is_owner(command.sender_id):
            self.channels.remove(channel.name)
            logger.info(f"Channel {channel.name} removed (owner {sender} left).")
        else:
            channel.remove_member(command.sender_id)
        return Broadcast.okay(command, sender, recipients)

    def _kick(self, command):
        sender = self.users.lookup_nickname(command.sender_id)
        if sender is None:
            return Broadcast.error_to(command, ServerError.NO_SUCH_USER)
        channel = self.channels.find(command.channel)
        if channel is None:
            return Broadcast.error_to(command, ServerError.NO_SUCH_CHANNEL, sender)
        target_id = self.users.lookup_id(command.nickname)
        if target_id is None:
            return Broadcast.error_to(command, ServerError.NO_SUCH_USER, sender)
        if not channel.is_owner(command.sender_id):
            return Broadcast.error_to(command, ServerError.NOT_OWNER, sender)
        if target_id not in channel:
            return Broadcast.error_to(command, ServerError.NOT_IN_CHANNEL, sender)

        recipients = self._nicks(channel.members())
        if channel.is_owner(target_id):
            self.channels.remove(channel.name)
            logger.info(f"Channel {channel.name} removed (owner kicked self).")
        else:
            channel.remove_member(target_id)
        return Broadcast.okay(command, sender, recipients)
