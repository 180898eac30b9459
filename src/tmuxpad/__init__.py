# SPDX-FileCopyrightText: 2021 Rose Davidson <rose@metaclassical.com>
#
# SPDX-License-Identifier: GPL-3.0-or-later

# Terminal input stages (streams.py)
# stage 0: raw bytes from the tty file descriptor
# stage 1: incremental utf-8 decoding
# stage 2: split into single characters and complete escape sequences
# stage 3: decode into KeyInput and SGR MouseInput events

# app level:
# the router turns a button release into a key tap, the key states compose a chord,
# and the chord goes out to tmux over a control mode channel
