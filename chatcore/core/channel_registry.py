from typing import Dict, List, Optional, Set


class Channel:
    """채널 하나의 상태: 이름, 방장(owner), 비공개 여부, 멤버 ID 집합"""

    def __init__(self, name: str, owner: int, private: bool = False):
        self.name = name
        self.owner = owner
        self.private = private
        self._members: Set[int] = {owner}

    def add_member(self, user_id: int):
        self._members.add(user_id)

    def remove_member(self, user_id: int):
        self._members.discard(user_id)

    def members(self) -> Set[int]:
        # 내부 set을 그대로 넘기지 않고 복사본 반환
        return set(self._members)

    def is_owner(self, user_id: int) -> bool:
        return self.owner == user_id

    def is_private(self) -> bool:
        return self.private

    def __contains__(self, user_id):
        return user_id in self._members

    def __len__(self):
        return len(self._members)

    def __repr__(self):
        return f"Channel({self.name!r}, owner={self.owner}, private={self.private}, members={sorted(self._members)})"


class ChannelRegistry:
    """채널 이름 -> Channel 매핑 관리 (락은 CommandProcessor가 담당)"""

    def __init__(self):
        self.channels: Dict[str, Channel] = {}

    def create(self, name: str, owner_id: int, private: bool = False) -> Optional[Channel]:
        """채널 생성 (이미 있으면 None)"""
        if name in self.channels:
            return None
        channel = Channel(name, owner_id, private)
        self.channels[name] = channel
        return channel

    def find(self, name: str) -> Optional[Channel]:
        return self.channels.get(name)

    def remove(self, name: str) -> Optional[Channel]:
        return self.channels.pop(name, None)

    def all_channel_names(self) -> Set[str]:
        return set(self.channels)

    def channels_with_member(self, user_id: int) -> List[Channel]:
        """user_id가 속한 채널 목록 (이름순)"""
        return [self.channels[name] for name in sorted(self.channels) if user_id in self.channels[name]]

    def __len__(self):
        return len(self.channels)
