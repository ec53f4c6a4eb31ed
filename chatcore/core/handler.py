import threading

from chatcore import config
from chatcore.core.parser import CommandParser, ProtocolError
from chatcore.utils.logger import get_logger

logger = get_logger("Handler")


class ClientHandler(threading.Thread):
    """소켓 하나를 담당하는 스레드. 라인을 읽어 Command로 바꾼 뒤 서버에 전달합니다."""

    def __init__(self, sock, addr, server):
        super().__init__(daemon=True)
        self.sock = sock
        self.addr = addr
        self.server = server
        self.user_id = None
        self.running = True
        self.send_lock = threading.Lock()

    def run(self):
        logger.info(f"Connected: {self.addr}")
        # 접속 즉시 서버에 등록 (기본 닉네임 배정)
        self.user_id = self.server.connect(self)
        buffer = ""
        try:
            while self.running:
                try:
                    data = self.sock.recv(config.RECV_SIZE)
                except ConnectionResetError:
                    break
                if not data:
                    break

                buffer += data.decode('utf-8', errors='replace')

                while "\r\n" in buffer and self.running:
                    line, buffer = buffer.split("\r\n", 1)
                    if not line:
                        continue

                    command, params = CommandParser.parse(line)
                    if command:
                        self.handle_command(command, params)
        except Exception as e:
            logger.error(f"Error handling client {self.addr}: {e}")
        finally:
            self.cleanup()

    def handle_command(self, command, params):
        logger.debug(f"Received from {self.user_id}: {command} {params}")

        if command == "PING":
            self.send_message(f"PONG {params[0]}" if params else "PONG")
            return

        if command == "QUIT":
            self.running = False
            return

        try:
            parsed = CommandParser.to_command(self.user_id, command, params)
        except ProtocolError as e:
            nick = self.server.nickname_of(self.user_id) or "*"
            self.send_message(CommandParser.build_msg(config.SERVER_PREFIX, e.code, nick, command, str(e)))
            return

        self.server.dispatch(parsed)

    def send_message(self, msg):
        try:
            with self.send_lock:
                self.sock.sendall(f"{msg}\r\n".encode('utf-8'))
        except OSError as e:
            logger.error(f"Send error to {self.addr}: {e}")

    def cleanup(self):
        logger.info(f"Disconnected: {self.addr}")
        if self.user_id is not None:
            self.server.disconnect(self.user_id)
        try:
            self.sock.close()
        except OSError:
            pass
