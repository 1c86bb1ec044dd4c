"""
Timing and integrity constants shared by the services and the config layer.
Values are in seconds unless stated otherwise.
"""

TICK_SECONDS = 1

# Learner-side liveness poll ("is my session still active?")
SESSION_POLL_SECONDS = 10

# Proctor-side monitor refresh
MONITOR_POLL_SECONDS = 5

# A participant counts as connected if active within this window
CONNECTED_WINDOW_SECONDS = 120

# Mean answer time outside this band is flagged as anomalous
ANSWER_TIME_BAND = (2, 30)

# Delay before moving on after an expiry (no answers shown)
ADVANCE_DELAY_SECONDS = 1

# Delay before moving on while the correct option is highlighted
SHOW_ANSWERS_DELAY_SECONDS = 2

# Cheat-forced advance fires on the next turn of the learner timeline
CHEAT_ADVANCE_DELAY_SECONDS = 0

DEFAULT_TIME_PER_QUESTION = 30
DEFAULT_PASSING_SCORE = 60

JOIN_CODE_LENGTH = 6
# No O/0 or I/1 so codes survive being read aloud
JOIN_CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
