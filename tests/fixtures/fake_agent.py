"""
Stand-in agent executable for tests.

Speaks the agent's JSON event stream on stdout. The prompt is the last
argument; ``@name`` or ``@name=value`` tokens inside it change behavior:

    @sleep=N         sleep N seconds before the assistant reply
    @exit=N          write "boom" to stderr and exit with code N
    @stop=REASON     report REASON as the stop reason ("error" adds an error message)
    @garbage         emit malformed and non-object lines first
    @argv            reply with the JSON list of arguments (prompt excluded)
    @cwd             reply with the working directory
    @session         reply with the --session path and the seed file's contents
    @nonewline       leave the final line unterminated
    @chunked         write the reply line in small flushed pieces
    @tools           include a tool call and a tool result
    @ignoresigterm   ignore SIGTERM
    @model           omit the model field from the reply
    @badusage        report null and malformed usage fields
"""

import json
import os
import re
import signal
import sys
import time


USAGE = {
    "input": 10,
    "output": 5,
    "cacheRead": 1,
    "cacheWrite": 2,
    "totalTokens": 18,
    "cost": {"total": 0.001},
}

BAD_USAGE = {"input": 10, "output": 5, "cacheRead": None, "totalTokens": "many", "cost": None}

DIRECTIVE = re.compile(r"@(\w+)(?:=(\S+))?")


def emit(event, newline=True):
    sys.stdout.write(json.dumps(event) + ("\n" if newline else ""))
    sys.stdout.flush()


def option_value(args, name):
    if name in args:
        index = args.index(name)
        if index + 1 < len(args):
            return args[index + 1]
    return None


def main():
    args = sys.argv[1:]
    prompt = args[-1] if args else ""
    directives = {name: value for name, value in DIRECTIVE.findall(prompt)}

    if "ignoresigterm" in directives:
        signal.signal(signal.SIGTERM, signal.SIG_IGN)

    emit({"type": "message_start", "message": {"role": "assistant"}})

    if "garbage" in directives:
        sys.stdout.write("this is not json\n")
        sys.stdout.write("[1, 2, 3]\n")
        sys.stdout.write("42\n")
        sys.stdout.write('{"type": "message_end", "message": {"role": "narrator"}}\n')
        sys.stdout.flush()

    emit({
        "type": "message_end",
        "message": {"role": "user", "content": [{"type": "text", "text": prompt}]},
    })

    if "sleep" in directives:
        time.sleep(float(directives["sleep"]))

    reply = prompt
    if "argv" in directives:
        reply = json.dumps(args[:-1])
    elif "cwd" in directives:
        reply = os.getcwd()
    elif "session" in directives:
        session_path = option_value(args, "--session")
        content = None
        if session_path and os.path.exists(session_path):
            with open(session_path, encoding="utf-8") as f:
                content = f.read()
        reply = json.dumps({
            "session": session_path,
            "session_dir": option_value(args, "--session-dir"),
            "content": content,
        })

    content = [{"type": "text", "text": reply}]

    if "tools" in directives:
        tool_call = {"type": "toolCall", "name": "read", "arguments": {"path": "README.md"}}
        emit({
            "type": "message_end",
            "message": {"role": "assistant", "content": [tool_call], "usage": USAGE, "model": "fake/model"},
        })
        emit({
            "type": "tool_result_end",
            "message": {"role": "toolResult", "content": [{"type": "text", "text": "readme"}]},
        })

    message = {"role": "assistant", "content": content, "usage": BAD_USAGE if "badusage" in directives else USAGE}
    if "model" not in directives:
        message["model"] = "fake/model"
    stop = directives.get("stop")
    if stop:
        message["stopReason"] = stop
        if stop == "error":
            message["errorMessage"] = "model exploded"
    else:
        message["stopReason"] = "stop"

    event = {"type": "message_end", "message": message}
    if "chunked" in directives:
        line = (json.dumps(event, ensure_ascii=False) + "\n").encode("utf-8")
        for start in range(0, len(line), 7):
            sys.stdout.buffer.write(line[start:start + 7])
            sys.stdout.buffer.flush()
            time.sleep(0.001)
    else:
        emit(event, newline="nonewline" not in directives)

    if "exit" in directives:
        sys.stderr.write("boom")
        sys.stderr.flush()
        sys.exit(int(directives["exit"]))


if __name__ == "__main__":
    main()
