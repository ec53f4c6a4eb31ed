from typing import Dict, Optional, Set

DEFAULT_NICK_PREFIX = "User"


class UserRegistry:
    """접속 ID <-> 닉네임 매핑 관리

    스레드 동기화는 하지 않습니다. CommandProcessor가 락을 잡은 상태에서만 호출됩니다.
    """

    def __init__(self):
        self.nicknames: Dict[int, str] = {}  # user id -> nickname
        self.ids: Dict[str, int] = {}  # nickname -> user id

    def register(self, user_id: int) -> str:
        """사용 중이지 않은 가장 작은 User<N> 닉네임을 배정"""
        suffix = 0
        while f"{DEFAULT_NICK_PREFIX}{suffix}" in self.ids:
            suffix += 1
        nickname = f"{DEFAULT_NICK_PREFIX}{suffix}"

        # 같은 ID로 재등록되면 이전 닉네임은 해제
        old = self.nicknames.get(user_id)
        if old is not None:
            del self.ids[old]

        self.nicknames[user_id] = nickname
        self.ids[nickname] = user_id
        return nickname

    def deregister(self, user_id: int):
        nickname = self.nicknames.pop(user_id, None)
        if nickname is not None:
            del self.ids[nickname]

    def lookup_id(self, nickname: str) -> Optional[int]:
        return self.ids.get(nickname)

    def lookup_nickname(self, user_id: int) -> Optional[str]:
        return self.nicknames.get(user_id)

    def is_registered(self, user_id: int) -> bool:
        return user_id in self.nicknames

    def rename(self, user_id: int, new_nickname: str) -> bool:
        """닉네임 변경 (성공 시 True, 다른 유저가 사용 중이면 False)

        이름 형식 검사는 호출하는 쪽에서 먼저 해야 합니다.
        """
        holder = self.ids.get(new_nickname)
        if holder is not None and holder != user_id:
            return False
        if user_id not in self.nicknames:
            return False

        old = self.nicknames[user_id]
        del self.ids[old]
        self.nicknames[user_id] = new_nickname
        self.ids[new_nickname] = user_id
        return True

    def all_nicknames(self) -> Set[str]:
        return set(self.ids)

    def __len__(self):
        return len(self.nicknames)
