import re

from teamdesk.chat import keys


def test_dm_key_is_order_independent():
    assert keys.dm_key(7, 3) == "dm:3:7"
    assert keys.dm_key(3, 7) == "dm:3:7"


def test_thread_key():
    assert keys.thread_key("abc") == "thread:abc"


def test_meta_for_known_prefixes():
    assert keys.meta_for_key("general") == keys.ChannelMeta("public", "#general")
    assert keys.meta_for_key("dm:1:2").type == "dm"
    assert keys.meta_for_key("thread:xyz").name == "Thread"


def test_meta_for_unknown_key_is_public_and_named_after_key():
    meta = keys.meta_for_key("random-room")
    assert meta.type == "public"
    assert meta.name == "random-room"


def test_generate_channel_key_shape():
    key = keys.generate_channel_key("Design Team!")
    assert re.fullmatch(r"chan:design-team:[a-z0-9]{4}", key)


def test_generate_channel_key_defaults_slug():
    assert keys.generate_channel_key("***").startswith("chan:channel:")
