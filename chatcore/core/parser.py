from chatcore import config
from chatcore.core.broadcast import BroadcastKind
from chatcore.core.commands import Command, CommandKind

PRIVATE_FLAG = "PRIVATE"

ERR_UNKNOWN_COMMAND = 421
ERR_NEED_MORE_PARAMS = 461


class ProtocolError(ValueError):
    """클라이언트 라인을 Command로 바꿀 수 없을 때 (code: numeric reply)"""

    def __init__(self, code, message):
        super().__init__(message)
        self.code = code


# 각 명령이 요구하는 최소 파라미터 수
REQUIRED_PARAMS = {
    CommandKind.RENAME: 1,
    CommandKind.CREATE: 1,
    CommandKind.JOIN: 1,
    CommandKind.INVITE: 2,
    CommandKind.MESSAGE: 2,
    CommandKind.LEAVE: 1,
    CommandKind.KICK: 2,
}


class CommandParser:
    @staticmethod
    def parse(message: str):
        """
        RFC 1459 스타일의 메시지를 파싱합니다.
        형식: [PREFIX] COMMAND [PARAMS...]
        """
        message = message.strip()
        if not message:
            return None, []

        if message.startswith(":"):
            # prefix가 있는 경우 (예: :nick COMMAND ...) -> 클라이언트 prefix는 무시
            parts = message.split(" ", 1)
            if len(parts) < 2:
                return None, []
            message = parts[1].strip()

        # Trailing Parameter 분리 ( " :" 로 시작하는 부분)
        trailing = None
        if " :" in message:
            message, trailing = message.split(" :", 1)

        args = message.split()
        if not args:
            return None, []

        command = args[0].upper()
        params = args[1:]

        if trailing is not None:
            params.append(trailing)

        return command, params

    @staticmethod
    def to_command(user_id, command, params) -> Command:
        """파싱된 (command, params)를 Command로 변환. 잘못된 입력은 ProtocolError"""
        try:
            kind = CommandKind(command)
        except ValueError:
            raise ProtocolError(ERR_UNKNOWN_COMMAND, "Unknown command") from None
        if kind not in REQUIRED_PARAMS:
            # CONNECT / QUIT 는 클라이언트가 직접 보낼 수 없음 (연결 상태로 결정)
            raise ProtocolError(ERR_UNKNOWN_COMMAND, "Unknown command")
        if len(params) < REQUIRED_PARAMS[kind]:
            raise ProtocolError(ERR_NEED_MORE_PARAMS, "Not enough parameters")

        if kind is CommandKind.RENAME:
            return Command.rename(user_id, params[0])
        if kind is CommandKind.CREATE:
            private = len(params) > 1 and params[1].upper() == PRIVATE_FLAG
            return Command.create(user_id, params[0], private)
        if kind is CommandKind.JOIN:
            return Command.join(user_id, params[0])
        if kind is CommandKind.INVITE:
            # IRC 순서: INVITE <nick> <channel>
            return Command.invite(user_id, params[1], params[0])
        if kind is CommandKind.MESSAGE:
            return Command.message(user_id, params[0], params[1])
        if kind is CommandKind.LEAVE:
            return Command.leave(user_id, params[0])
        return Command.kick(user_id, params[0], params[1])

    @staticmethod
    def build_msg(prefix, command, *params):
        """
        서버 -> 클라이언트로 보낼 때 사용
        예: build_msg("User0", "PRIVMSG", "General", "Hello there") -> ":User0 PRIVMSG General :Hello there"
        """
        msg = f":{prefix} {command}"
        for i, p in enumerate(params):
            p = str(p)
            if i == len(params) - 1 and (" " in p or not p or p.startswith(":")):
                msg += f" :{p}"  # 마지막 파라미터에 공백이 있으면 콜론 추가
            else:
                msg += f" {p}"
        return msg

    @staticmethod
    def render(broadcast):
        """Broadcast -> 전송할 라인 목록 (CRLF 제외)"""
        build = CommandParser.build_msg
        server = config.SERVER_PREFIX
        command = broadcast.command

        if broadcast.kind is BroadcastKind.CONNECTED:
            nick = broadcast.nickname
            return [build(server, "001", nick, f"Welcome {nick}")]

        if broadcast.kind is BroadcastKind.DISCONNECTED:
            return [build(broadcast.nickname, "QUIT", "Connection closed")]

        if broadcast.kind is BroadcastKind.ERROR:
            error = broadcast.error
            return [build(server, error.code, broadcast.sender or "*", command.verb, error.message)]

        sender = broadcast.sender
        if broadcast.kind is BroadcastKind.NAMES:
            if command.kind is CommandKind.INVITE:
                lines = [build(sender, "INVITE", command.nickname, command.channel)]
            else:
                lines = [build(sender, "JOIN", command.channel)]
            names = [f"@{broadcast.owner}"] + [m for m in broadcast.members if m != broadcast.owner]
            lines.append(f":{server} 353 = {command.channel} :{' '.join(names)}")
            lines.append(build(server, "366", command.channel, "End of /NAMES list"))
            return lines

        if command.kind is CommandKind.RENAME:
            return [build(sender, "NICK", command.nickname)]
        if command.kind is CommandKind.CREATE:
            if command.private:
                return [build(sender, "CREATE", command.channel, PRIVATE_FLAG)]
            return [build(sender, "CREATE", command.channel)]
        if command.kind is CommandKind.MESSAGE:
            return [f":{sender} PRIVMSG {command.channel} :{command.body}"]
        if command.kind is CommandKind.LEAVE:
            return [build(sender, "PART", command.channel)]
        if command.kind is CommandKind.KICK:
            return [build(sender, "KICK", command.channel, command.nickname)]
        raise ValueError(f"Cannot render {broadcast.kind.name} for {command.verb}")
