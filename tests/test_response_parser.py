"""Tests for directive extraction and content reconstruction."""

import pytest

from parley.core.schema import (
    AgentCall,
    ToolCall,
)
from parley.protocol.response_parser import parse_response


@pytest.mark.parametrize(
    "text",
    [
        "This is a simple text response without any tool calls.",
        "Line one\n\nLine two\n",
        "Mentions TOOL and AGENT but not as directives: TOOL:done is quoted here.",
        "",
    ],
)
def test_plain_text_is_unchanged(text: str) -> None:
    result = parse_response(text)
    assert result.content == text
    assert result.tool_calls == []
    assert result.agent_calls == []
    assert result.done is False


def test_tool_call_with_correlation_id() -> None:
    result = parse_response(
        "Let me calculate that for you.\n\nTOOL:test-correlation-id:calculator.add(5, 10, 15)"
    )
    assert result.done is False
    assert result.content == "Let me calculate that for you.\n\n[Using calculator.add(5, 10, 15)]"
    assert result.tool_calls == [
        ToolCall(
            tool_id="calculator",
            correlation_id="test-correlation-id",
            function_name="add",
            raw_args=["5", "10", "15"],
        )
    ]


def test_missing_correlation_id_defaults() -> None:
    result = parse_response("TOOL:calc.add(5,10)")
    assert result.tool_calls[0].correlation_id == "default"
    assert result.tool_calls[0].tool_id == "calc"
    assert result.tool_calls[0].raw_args == ["5", "10"]


def test_identifier_with_extra_colons_has_no_correlation_id() -> None:
    result = parse_response("TOOL:a:b:c.run()")
    assert result.tool_calls[0].correlation_id == "default"
    assert result.tool_calls[0].tool_id == "a:b:c"


def test_done_signal() -> None:
    result = parse_response("Here is the final answer to your question.\n\nTOOL:done")
    assert result.done is True
    assert result.content == "Here is the final answer to your question.\n\n[Task completed]"
    assert result.tool_calls == []


def test_done_after_single_newline_gets_blank_line() -> None:
    result = parse_response("Answer: 42\nTOOL:done")
    assert result.content == "Answer: 42\n\n[Task completed]"


def test_done_after_text_on_same_line() -> None:
    result = parse_response("Answer: 42 TOOL:done")
    assert result.done is False
    assert result.content == "Answer: 42 TOOL:done"


def test_quoted_string_arguments() -> None:
    result = parse_response(
        "Let me run that command.\n\nTOOL:test-correlation-id:bash.execute(\"echo 'Hello World'\")"
    )
    assert result.content == (
        "Let me run that command.\n\n[Using bash.execute(\"echo 'Hello World'\")]"
    )
    assert result.tool_calls[0].raw_args == ["\"echo 'Hello World'\""]


def test_backtick_string_arguments() -> None:
    result = parse_response(
        "Let me run this command with backticks.\n\nTOOL:test-correlation-id:command.run(`ls -la`)"
    )
    assert result.content == (
        "Let me run this command with backticks.\n\n[Using command.run(`ls -la`)]"
    )
    assert result.tool_calls[0].raw_args == ["`ls -la`"]


def test_empty_arguments() -> None:
    result = parse_response(
        "Let me list all files.\n\nTOOL:test-correlation-id:filesystem.listFiles()"
    )
    assert result.content == "Let me list all files.\n\n[Using filesystem.listFiles()]"
    assert result.tool_calls[0].raw_args == []


def test_escaped_quotes_are_echoed_raw() -> None:
    raw = (
        'Let me search for escaped quotes.\n\n'
        'TOOL:test-correlation-id:web.search("\\"escaped quotes\\"")\n'
        "Some more text."
    )
    result = parse_response(raw)
    assert result.tool_calls[0].raw_args == ['"\\"escaped quotes\\""']
    assert result.content == (
        'Let me search for escaped quotes.\n\n[Using web.search("\\"escaped quotes\\"")]'
        "\n\nSome more text."
    )


def test_multiple_newlines_before_tool_call_are_kept() -> None:
    result = parse_response(
        'Let me help you.\n\n\n\nTOOL:test-correlation-id:help.show("commands")'
    )
    assert result.content == 'Let me help you.\n\n\n\n[Using help.show("commands")]'
    assert result.tool_calls[0].raw_args == ['"commands"']


def test_expression_argument_and_trailing_text() -> None:
    raw = (
        "I'll solve this step by step:\n1. The day of the month is 1\n"
        "2. I'll add 42 to 1 using the calculator\n\n"
        "TOOL:test-correlation-id:calculator-tool.calculate(1 + 42)\n\nThe result is 43."
    )
    result = parse_response(raw)
    assert result.content == (
        "I'll solve this step by step:\n1. The day of the month is 1\n"
        "2. I'll add 42 to 1 using the calculator\n\n"
        "[Using calculator-tool.calculate(1 + 42)]\n\nThe result is 43."
    )
    assert result.tool_calls[0].tool_id == "calculator-tool"
    assert result.tool_calls[0].raw_args == ["1 + 42"]


def test_multiple_tool_calls() -> None:
    raw = """I'll perform multiple operations:

First, let me check the files in the current directory.
TOOL:id-1:filesystem.listFiles(".")

Now let me create a new file.
TOOL:id-2:filesystem.write("example.txt", "Hello World")

Finally, let me read the file content.
TOOL:id-3:filesystem.read("example.txt")

All done!"""
    result = parse_response(raw)

    assert result.done is False
    assert [(c.correlation_id, c.function_name, c.raw_args) for c in result.tool_calls] == [
        ("id-1", "listFiles", ['"."']),
        ("id-2", "write", ['"example.txt"', '"Hello World"']),
        ("id-3", "read", ['"example.txt"']),
    ]
    assert result.content == (
        "I'll perform multiple operations:\n\n"
        "First, let me check the files in the current directory.\n\n"
        '[Using filesystem.listFiles(".")]\n\n'
        "Now let me create a new file.\n\n"
        '[Using filesystem.write("example.txt", "Hello World")]\n\n'
        "Finally, let me read the file content.\n\n"
        '[Using filesystem.read("example.txt")]\n\n'
        "All done!"
    )


def test_tool_calls_with_done_signal() -> None:
    raw = """Let me help with these tasks:

First, I'll run a command.
TOOL:id-1:command.execute("echo Hello")

Now I'll get the current date.
TOOL:id-2:bash.execute("date")

TOOL:done"""
    result = parse_response(raw)

    assert result.done is True
    assert [c.tool_id for c in result.tool_calls] == ["command", "bash"]
    assert result.tool_calls[1].raw_args == ['"date"']
    assert result.content.endswith('[Using bash.execute("date")]\n\n[Task completed]')


def test_agent_delegation() -> None:
    result = parse_response('Asking Bob.\nAGENT:c1:Bob("Please summarize the report")\n')
    assert result.agent_calls == [
        AgentCall(
            target_agent_name="Bob", correlation_id="c1", message="Please summarize the report"
        )
    ]
    assert result.content == (
        'Asking Bob.\n\n[Delegating to agent Bob: "Please summarize the report"]'
    )


def test_agent_message_is_unescaped() -> None:
    result = parse_response('AGENT:Bob("say \\"hi\\"")')
    assert result.agent_calls[0].message == 'say "hi"'
    assert result.agent_calls[0].correlation_id == "default"


def test_agent_with_several_arguments_joins_them_raw() -> None:
    result = parse_response('AGENT:x:Bob("a", 2)')
    assert result.agent_calls[0].message == '"a", 2'


def test_interleaved_directives_keep_source_order() -> None:
    raw = (
        "Plan:\n"
        'TOOL:t1:fs.read("a.txt")\n'
        'AGENT:a1:Researcher("find sources")\n'
        "Some prose in between.\n"
        'TOOL:t2:fs.read("b.txt")\n'
        'AGENT:a2:Writer("draft it")\n'
        "TOOL:t3:calc.add(1, 2)\n"
    )
    result = parse_response(raw)
    assert [c.correlation_id for c in result.tool_calls] == ["t1", "t2", "t3"]
    assert [(c.correlation_id, c.target_agent_name) for c in result.agent_calls] == [
        ("a1", "Researcher"),
        ("a2", "Writer"),
    ]


def test_text_after_directive_on_same_line() -> None:
    result = parse_response("TOOL:calc.add(1, 2) and then some")
    assert result.content == "[Using calc.add(1, 2)]\n\nand then some"


def test_two_directives_on_one_line() -> None:
    result = parse_response("TOOL:a.f() TOOL:b.g()")
    assert [c.tool_id for c in result.tool_calls] == ["a", "b"]
    assert result.content == "[Using a.f()]\n\n[Using b.g()]"


def test_indented_directive_is_recognised() -> None:
    result = parse_response("Finished.\n   TOOL:done")
    assert result.done is True
    assert result.content == "Finished.\n\n[Task completed]"


@pytest.mark.parametrize(
    "raw",
    [
        "TOOL:nodot here\nnext line",
        "TOOL:calc.add 1, 2\n",
        'TOOL:fs.read("never closed\nmore text',
        "TOOL:fs.read(1, 2\n",
        "AGENT:Bob()\n",
        "AGENT:Bob please\n",
        "TOOL:.f()",
    ],
)
def test_malformed_directives_stay_as_text(raw: str) -> None:
    result = parse_response(raw)
    assert result.content == raw
    assert result.tool_calls == []
    assert result.agent_calls == []
    assert result.done is False


def test_malformed_directive_does_not_stop_parsing() -> None:
    result = parse_response("TOOL:broken here\nTOOL:id:calc.add(1, 2)")
    assert result.content == "TOOL:broken here\n\n[Using calc.add(1, 2)]"
    assert result.tool_calls[0].correlation_id == "id"


def test_reparsing_content_is_idempotent() -> None:
    raw = (
        "Checking.\n"
        'TOOL:id-1:fs.listFiles(".")\n\n'
        'AGENT:c2:Bob("summarize")\n'
        "Done here.\nTOOL:done"
    )
    first = parse_response(raw)
    second = parse_response(first.content)
    assert second.content == first.content
    assert second.tool_calls == []
    assert second.agent_calls == []
    assert second.done is False


@pytest.mark.parametrize(
    "raw",
    [
        'Asking.\nAGENT:c1:helper("first\\nTOOL:calc.add(1, 2)")\n',
        'TOOL:w:fs.write("a.txt", "x\nTOOL:calc.add(1)")',
    ],
)
def test_multiline_arguments_keep_descriptions_on_one_line(raw: str) -> None:
    first = parse_response(raw)
    assert len(first.tool_calls) + len(first.agent_calls) == 1
    assert "TOOL:calc.add" in first.content
    assert "\nTOOL:" not in first.content

    second = parse_response(first.content)
    assert second.content == first.content
    assert second.tool_calls == []
    assert second.agent_calls == []


def test_delegation_message_keeps_its_line_breaks() -> None:
    result = parse_response('AGENT:c1:helper("first\\nsecond")')
    assert result.agent_calls[0].message == "first\nsecond"
    assert result.content == '[Delegating to agent helper: "first\\nsecond"]'


def test_end_to_end_scenario() -> None:
    result = parse_response('Let me check.\n\nTOOL:id-1:fs.listFiles(".")\n\nDone.')
    assert result.tool_calls == [
        ToolCall(tool_id="fs", correlation_id="id-1", function_name="listFiles", raw_args=['"."'])
    ]
    assert result.content == 'Let me check.\n\n[Using fs.listFiles(".")]\n\nDone.'
