from __future__ import annotations

from termai.core.ai.prompts import (
    AGENT_SYSTEM_PROMPT,
    CMD_INFO_FORMATTING,
    CMD_INFO_PREAMBLE,
    build_agent_prompt,
    build_prompt_from_chat_messages,
    get_cmd_info_engineered_prompt,
    get_os_type,
)
from termai.models.terminal import CmdInfoAssistantResponse, CmdInfoChatMessage


def test_agent_prompt_places_system_prompt_first() -> None:
    prompt = build_agent_prompt("list files")

    assert [message.role for message in prompt] == ["system", "user"]
    assert prompt[0].content == AGENT_SYSTEM_PROMPT
    assert prompt[1].content == "list files"


def test_cmd_info_prompt_includes_current_command() -> None:
    prompt = get_cmd_info_engineered_prompt("why does this fail?", "ls -z", "zsh", "linux")

    assert prompt.startswith(CMD_INFO_PREAMBLE)
    assert 'The user is current using the "zsh" shell on linux.' in prompt
    assert "The user is currently working with the command: ```\nls -z\n```" in prompt
    assert prompt.index("ls -z") < prompt.index(CMD_INFO_FORMATTING)
    assert prompt.endswith("The user's question is:\n\nwhy does this fail?")


def test_cmd_info_prompt_skips_blank_command_line() -> None:
    prompt = get_cmd_info_engineered_prompt("how do I list files?", "   \t", "bash", "linux")

    assert "currently working with the command" not in prompt
    assert CMD_INFO_FORMATTING in prompt


def test_os_type_maps_darwin_to_macos() -> None:
    assert get_os_type("darwin") == "macos"
    assert get_os_type("linux") == "linux"
    assert get_os_type("windows") == "windows"


def test_chat_history_prefers_engineered_query() -> None:
    messages = [
        CmdInfoChatMessage(message_id=0, user_query="raw", user_engineered_query="engineered"),
        CmdInfoChatMessage(
            message_id=1,
            is_assistant_response=True,
            assistant_response=CmdInfoAssistantResponse(message="answer"),
        ),
        CmdInfoChatMessage(message_id=2, user_query="follow up"),
    ]

    prompt = build_prompt_from_chat_messages(messages)

    assert [(message.role, message.content) for message in prompt] == [
        ("user", "engineered"),
        ("assistant", "answer"),
        ("user", "follow up"),
    ]
