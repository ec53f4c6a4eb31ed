"""
Multi-channel chat server (raw sockets, IRC-style lines).
"""
import argparse
import itertools
import socket
import threading

from chatcore import config
from chatcore.core.commands import Command, CommandKind
from chatcore.core.handler import ClientHandler
from chatcore.core.parser import CommandParser
from chatcore.core.processor import CommandProcessor
from chatcore.utils.logger import get_logger

logger = get_logger("Server")


class ChatServer:
    """접속 테이블(user id -> handler)과 CommandProcessor를 묶어 알림을 전달합니다."""

    def __init__(self, processor=None):
        self.processor = processor if processor is not None else CommandProcessor()
        self.connections = {}  # user id -> ClientHandler
        self.lock = threading.Lock()
        self._ids = itertools.count()

    def connect(self, handler) -> int:
        with self.lock:
            user_id = next(self._ids)
            self.connections[user_id] = handler
        self.dispatch(Command.connect(user_id))
        return user_id

    def disconnect(self, user_id):
        return self.dispatch(Command.disconnect(user_id))

    def nickname_of(self, user_id):
        return self.processor.lookup_nickname(user_id)

    def dispatch(self, command):
        # 처리와 수신자 결정은 락 안에서, 실제 전송은 락 밖에서
        with self.lock:
            broadcast = self.processor.process(command)
            targets = self._resolve(broadcast)
            if command.kind is CommandKind.DISCONNECT:
                self.connections.pop(command.sender_id, None)

        self._deliver(broadcast, targets)
        return broadcast

    def _resolve(self, broadcast):
        targets = []
        for nick in broadcast.recipients:
            user_id = self.processor.lookup_id(nick)
            handler = self.connections.get(user_id)
            if handler is None:
                # 이미 끊긴 유저에게는 전달하지 않음
                continue
            targets.append(handler)
        return targets

    def _deliver(self, broadcast, targets):
        if not targets:
            return
        lines = CommandParser.render(broadcast)
        for handler in targets:
            for line in lines:
                try:
                    handler.send_message(line)
                except Exception as e:
                    logger.error(f"Error sending to {handler.user_id}: {e}")


def start_server(host=config.HOST, port=config.PORT, chat_server=None):
    chat_server = chat_server if chat_server is not None else ChatServer()

    server_sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    server_sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
    server_sock.bind((host, port))
    server_sock.listen(32)
    logger.info(f"Server listening on {host}:{port}")

    try:
        while True:
            conn, addr = server_sock.accept()
            ClientHandler(conn, addr, chat_server).start()
    except KeyboardInterrupt:
        logger.info("Server shutting down...")
    finally:
        server_sock.close()


def main():
    parser = argparse.ArgumentParser(description="Multi-channel chat server (raw sockets)")
    parser.add_argument("--host", default=config.HOST)
    parser.add_argument("--port", type=int, default=config.PORT)
    args = parser.parse_args()
    start_server(args.host, args.port)


if __name__ == "__main__":
    main()
