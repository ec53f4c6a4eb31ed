"""Tests for the command processor state machine."""

import threading

import pytest

from chatcore.core.broadcast import Broadcast, BroadcastKind, ServerError
from chatcore.core.commands import Command, CommandKind
from chatcore.core.processor import CommandProcessor


def connect(processor, *user_ids):
    for uid in user_ids:
        processor.process(Command.connect(uid))


# =============================================================================
# Connect / Disconnect
# =============================================================================

def test_connect_assigns_default_nickname(processor):
    command = Command.connect(0)
    result = processor.process(command)

    assert result == Broadcast.connected(command, "User0")
    assert result.recipients == ("User0",)
    assert processor.registered_users() == {"User0"}


def test_connect_uses_smallest_free_suffix(processor):
    connect(processor, 0, 1, 2)
    processor.process(Command.disconnect(1))

    result = processor.process(Command.connect(3))
    assert result.nickname == "User1"
    assert processor.registered_users() == {"User0", "User1", "User2"}


def test_disconnect_notifies_channel_neighbours(processor):
    connect(processor, 0, 1, 2, 3)
    processor.process(Command.create(0, "alpha"))
    processor.process(Command.create(2, "beta"))
    processor.process(Command.join(1, "alpha"))
    processor.process(Command.join(1, "beta"))

    command = Command.disconnect(1)
    result = processor.process(command)

    assert result == Broadcast.disconnected(command, "User1", {"User0", "User2"}, {"alpha", "beta"})
    assert processor.channel_members("alpha") == {"User0"}
    assert processor.channel_members("beta") == {"User2"}
    assert processor.lookup_id("User1") is None


def test_disconnect_removes_owned_channels(processor):
    connect(processor, 0, 1)
    processor.process(Command.create(0, "solo"))
    processor.process(Command.create(0, "shared"))
    processor.process(Command.join(1, "shared"))

    result = processor.process(Command.disconnect(0))

    assert result.recipients == ("User1",)
    assert processor.channel_names() == set()
    assert processor.channel_members("shared") == set()


def test_disconnect_unknown_id_is_rejected(processor):
    result = processor.process(Command.disconnect(5))
    assert result.error is ServerError.NO_SUCH_USER
    assert result.recipients == ()


# =============================================================================
# Rename
# =============================================================================

def test_rename_invalid_name(processor):
    connect(processor, 0)
    command = Command.rename(0, "!nv@l!d!")

    assert processor.process(command) == Broadcast.error_to(command, ServerError.INVALID_NAME, "User0")
    assert processor.registered_users() == {"User0"}
    assert processor.lookup_nickname(0) == "User0"


def test_rename_name_in_use(processor):
    connect(processor, 0, 1)
    command = Command.rename(1, "User0")

    result = processor.process(command)
    assert result == Broadcast.error_to(command, ServerError.NAME_IN_USE, "User1")
    assert processor.lookup_nickname(1) == "User1"


def test_rename_notifies_channel_neighbours_with_new_name(processor):
    connect(processor, 0, 1, 2)
    processor.process(Command.create(0, "alpha"))
    processor.process(Command.join(1, "alpha"))

    command = Command.rename(1, "bob")
    result = processor.process(command)

    assert result == Broadcast.okay(command, "User1", {"User0", "bob"})
    assert processor.lookup_id("bob") == 1
    assert processor.lookup_nickname(1) == "bob"
    assert processor.channel_members("alpha") == {"User0", "bob"}


def test_rename_without_channels_notifies_only_self(processor):
    connect(processor, 0)
    result = processor.process(Command.rename(0, "alice"))
    assert result.recipients == ("alice",)
    assert result.sender == "User0"


def test_rename_to_current_name_succeeds(processor):
    connect(processor, 0)
    result = processor.process(Command.rename(0, "User0"))
    assert not result.is_error


# =============================================================================
# Create / Join
# =============================================================================

def test_create_channel(processor):
    connect(processor, 0)
    command = Command.create(0, "alpha")

    assert processor.process(command) == Broadcast.okay(command, "User0", {"User0"})
    assert processor.channel_names() == {"alpha"}
    assert processor.channel_members("alpha") == {"User0"}
    assert processor.channel_owner("alpha") == "User0"


def test_create_invalid_name(processor):
    connect(processor, 0)
    result = processor.process(Command.create(0, "no spaces"))
    assert result.error is ServerError.INVALID_NAME
    assert processor.channel_names() == set()


def test_create_existing_channel(processor):
    connect(processor, 0, 1)
    processor.process(Command.create(0, "alpha"))

    result = processor.process(Command.create(1, "alpha", private=True))
    assert result.error is ServerError.CHANNEL_EXISTS
    assert result.recipients == ("User1",)
    assert processor.channel_owner("alpha") == "User0"


def test_join_missing_channel_leaves_state_unchanged(processor):
    connect(processor, 0, 1)
    processor.process(Command.create(0, "alpha"))

    command = Command.join(1, "beta")
    assert processor.process(command) == Broadcast.error_to(command, ServerError.NO_SUCH_CHANNEL, "User1")
    assert processor.channel_names() == {"alpha"}
    assert processor.channel_members("alpha") == {"User0"}


def test_join_public_channel(processor):
    connect(processor, 0, 1)
    processor.process(Command.create(0, "alpha"))

    command = Command.join(1, "alpha")
    result = processor.process(command)

    assert result == Broadcast.names(command, "User1", {"User0", "User1"}, "User0")
    assert result.kind is BroadcastKind.NAMES
    assert result.members == ("User0", "User1")
    assert result.owner == "User0"


def test_join_private_channel_rejected():
    processor = CommandProcessor()
    connect(processor, 0, 1)
    processor.process(Command.create(0, "secret", private=True))

    command = Command.join(1, "secret")
    assert processor.process(command) == Broadcast.error_to(command, ServerError.JOIN_PRIVATE_CHANNEL, "User1")
    assert processor.channel_members("secret") == {"User0"}


# =============================================================================
# Invite
# =============================================================================

def test_invite_to_private_channel(processor):
    connect(processor, 0, 1)
    processor.process(Command.create(0, "secret", private=True))

    command = Command.invite(0, "secret", "User1")
    result = processor.process(command)

    assert result == Broadcast.names(command, "User0", {"User0", "User1"}, "User0")
    assert processor.channel_members("secret") == {"User0", "User1"}


def test_invite_to_public_channel_fails(processor):
    connect(processor, 0, 1)
    processor.process(Command.create(0, "alpha"))

    result = processor.process(Command.invite(0, "alpha", "User1"))
    assert result.error is ServerError.INVITE_TO_PUBLIC_CHANNEL
    assert processor.channel_members("alpha") == {"User0"}


def test_invite_by_non_owner_fails(processor):
    connect(processor, 0, 1, 2)
    processor.process(Command.create(0, "secret", private=True))
    processor.process(Command.invite(0, "secret", "User1"))

    result = processor.process(Command.invite(1, "secret", "User2"))
    assert result.error is ServerError.NOT_OWNER
    assert processor.channel_members("secret") == {"User0", "User1"}


@pytest.mark.parametrize("channel, target, expected", [
    ("nope", "nobody", ServerError.NO_SUCH_CHANNEL),
    ("alpha", "nobody", ServerError.NO_SUCH_USER),
])
def test_invite_check_order(processor, channel, target, expected):
    connect(processor, 0, 1)
    processor.process(Command.create(0, "alpha"))

    # 1번은 방장이 아니고 채널도 공개지만, 앞선 검사가 먼저 실패해야 함
    result = processor.process(Command.invite(1, channel, target))
    assert result.error is expected


def test_invite_non_owner_checked_before_public(processor):
    connect(processor, 0, 1)
    processor.process(Command.create(0, "alpha"))

    result = processor.process(Command.invite(1, "alpha", "User0"))
    assert result.error is ServerError.NOT_OWNER


# =============================================================================
# Message
# =============================================================================

def test_message_to_members(processor):
    connect(processor, 0, 1, 2)
    processor.process(Command.create(0, "alpha"))
    processor.process(Command.join(1, "alpha"))

    command = Command.message(1, "alpha", "hello there")
    result = processor.process(command)

    assert result == Broadcast.okay(command, "User1", {"User0", "User1"})
    assert processor.channel_members("alpha") == {"User0", "User1"}


def test_message_errors(processor):
    connect(processor, 0, 1)
    processor.process(Command.create(0, "alpha"))

    assert processor.process(Command.message(1, "beta", "hi")).error is ServerError.NO_SUCH_CHANNEL
    assert processor.process(Command.message(1, "alpha", "hi")).error is ServerError.NOT_IN_CHANNEL


# =============================================================================
# Leave / Kick
# =============================================================================

def test_owner_leave_removes_channel():
    processor = CommandProcessor()
    processor.process(Command.connect(0))
    processor.process(Command.create(0, "alpha"))
    processor.process(Command.connect(1))
    join = processor.process(Command.join(1, "alpha"))
    assert join.members == ("User0", "User1")
    assert join.owner == "User0"

    command = Command.leave(0, "alpha")
    result = processor.process(command)

    # 나가는 방장도 알림 대상
    assert result == Broadcast.okay(command, "User0", {"User0", "User1"})
    assert processor.channel_names() == set()
    assert processor.channel_members("alpha") == set()
    assert processor.channel_owner("alpha") is None


def test_member_leave_keeps_channel(processor):
    connect(processor, 0, 1, 2)
    processor.process(Command.create(0, "alpha"))
    processor.process(Command.join(1, "alpha"))
    processor.process(Command.join(2, "alpha"))

    result = processor.process(Command.leave(1, "alpha"))

    assert result.recipients == ("User0", "User1", "User2")
    assert processor.channel_members("alpha") == {"User0", "User2"}
    assert processor.channel_owner("alpha") == "User0"


def test_leave_errors(processor):
    connect(processor, 0, 1)
    processor.process(Command.create(0, "alpha"))

    assert processor.process(Command.leave(1, "beta")).error is ServerError.NO_SUCH_CHANNEL
    assert processor.process(Command.leave(1, "alpha")).error is ServerError.NOT_IN_CHANNEL
    assert processor.channel_members("alpha") == {"User0"}


def test_kick_member(processor):
    connect(processor, 0, 1, 2)
    processor.process(Command.create(0, "secret", private=True))
    processor.process(Command.invite(0, "secret", "User1"))
    processor.process(Command.invite(0, "secret", "User2"))

    command = Command.kick(0, "secret", "User1")
    result = processor.process(command)

    assert result == Broadcast.okay(command, "User0", {"User0", "User1", "User2"})
    assert processor.channel_members("secret") == {"User0", "User2"}


def test_owner_self_kick_removes_channel(processor):
    connect(processor, 0, 1)
    processor.process(Command.create(0, "alpha"))
    processor.process(Command.join(1, "alpha"))

    result = processor.process(Command.kick(0, "alpha", "User0"))

    assert result.recipients == ("User0", "User1")
    assert processor.channel_names() == set()


def test_kick_check_order(processor):
    connect(processor, 0, 1, 2)
    processor.process(Command.create(0, "alpha"))

    assert processor.process(Command.kick(1, "nope", "nobody")).error is ServerError.NO_SUCH_CHANNEL
    assert processor.process(Command.kick(1, "alpha", "nobody")).error is ServerError.NO_SUCH_USER
    assert processor.process(Command.kick(1, "alpha", "User2")).error is ServerError.NOT_OWNER
    assert processor.process(Command.kick(0, "alpha", "User2")).error is ServerError.NOT_IN_CHANNEL
    assert processor.channel_members("alpha") == {"User0"}


# =============================================================================
# Vanished users / concurrency
# =============================================================================

@pytest.mark.parametrize("command", [
    Command.rename(9, "ghost"),
    Command.create(9, "alpha"),
    Command.join(9, "alpha"),
    Command.invite(9, "alpha", "User0"),
    Command.message(9, "alpha", "boo"),
    Command.leave(9, "alpha"),
    Command.kick(9, "alpha", "User0"),
])
def test_unregistered_sender_rejected(processor, command):
    connect(processor, 0)
    processor.process(Command.create(0, "alpha"))

    result = processor.process(command)

    assert result == Broadcast.error_to(command, ServerError.NO_SUCH_USER)
    assert result.recipients == ()
    assert processor.channel_members("alpha") == {"User0"}
    assert processor.registered_users() == {"User0"}


def test_every_command_kind_has_a_handler(processor):
    assert set(processor._handlers) == set(CommandKind)


def test_concurrent_connects_get_unique_nicknames(processor):
    threads = [threading.Thread(target=processor.process, args=(Command.connect(i),)) for i in range(50)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert processor.registered_users() == {f"User{i}" for i in range(50)}
