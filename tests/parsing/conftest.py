# ---- Captured output from Amazon Q chat sessions (PTY, 80x30) ----

# Spinner frames redrawn in place while a response is generated
CAPTURED_THINKING_FRAMES = (
    "\x1b[?25l\x1b[38;5;13m⠋\x1b[0m Thinking...\r"
    "\x1b[38;5;13m⠙\x1b[0m Thinking...\r"
    "\x1b[38;5;13m⠹\x1b[0m Thinking...\r"
    "\x1b[K\x1b[?25h"
)

# Tool invocation header with trust marker
CAPTURED_TOOL_USE = (
    "\x1b[38;5;13m🛠️  Using tool: \x1b[1mfs_read\x1b[0m\x1b[38;5;8m (trusted)\x1b[0m"
)

# Permission prompt for an untrusted tool
CAPTURED_PERMISSION_PROMPT = (
    "\x1b[38;5;8mAllow this action? Use '\x1b[32mt\x1b[38;5;8m' to trust "
    "(always allow) this tool for the session. [\x1b[32my\x1b[38;5;8m/"
    "\x1b[32mn\x1b[38;5;8m/\x1b[32mt\x1b[38;5;8m]:\x1b[0m"
)

# File edit preview: one unchanged, one removed and one added entry
CAPTURED_DIFF_LINES = [
    "\x1b[38;5;8m  1,  1:\x1b[0m import os",
    "\x1b[31m- 2    : print('helo')\x1b[0m",
    "\x1b[32m+    2: print('hello')\x1b[0m",
]

# Completion line after a tool call
CAPTURED_COMPLETED = " \x1b[32m●\x1b[0m Completed in \x1b[1m0.3s\x1b[0m"

# Remnant left after the ESC introducer was consumed upstream
CAPTURED_BARE_CURSOR_SHOW = "[?25hHello there"

# Bracketed-paste toggle emitted before the input prompt
CAPTURED_PASTE_MODE = "\x1b[?2004h> \x1b[?2004l"
