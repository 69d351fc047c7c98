"""
Test Fixtures

Deterministic logs for the aggregation tests.
All fixtures are explicit - no random generation.
"""

from feedweave.storage import InMemoryLogStore


# =============================================================================
# FIXED TIMESTAMPS (epoch ms, deterministic)
# =============================================================================

T1 = 1767261600000          # 2026-01-01T10:00:00.000Z
T2 = T1 + 5 * 60 * 1000     # 10:05
T3 = T1 + 10 * 60 * 1000    # 10:10
T4 = T1 + 15 * 60 * 1000    # 10:15
NOW = T1 + 20 * 60 * 1000   # 10:20


def fixed_clock() -> float:
    return float(NOW)


# =============================================================================
# IDENTITIES AND KEYS
# =============================================================================

VIEWER = "@viewer.ed25519"
ALICE = "@alice.ed25519"
BOB = "@bob.ed25519"
CAROL = "@carol.ed25519"

ROOT_X = "%rootX.sha256"
REPLY_Y = "%replyY.sha256"
NESTED_Z = "%nestedZ.sha256"
VOTE_ON_Y = "%voteY.sha256"
MISSING = "%missing.sha256"


def post(text, root=None, fork=None, **extra):
    content = {"type": "post", "text": text}
    if root is not None:
        content["root"] = root
    if fork is not None:
        content["fork"] = fork
    content.update(extra)
    return content


def vote(link, value=1, expression="Like"):
    return {"type": "vote", "vote": {"link": link, "value": value, "expression": expression}}


# =============================================================================
# LOG FIXTURES
# =============================================================================

def create_empty_store() -> InMemoryLogStore:
    return InMemoryLogStore(whoami=VIEWER)


def create_thread_store() -> InMemoryLogStore:
    """
    Root X by alice, reply Y by bob, reply-to-reply Z by carol,
    and the viewer's like on Y.
    """
    store = InMemoryLogStore(whoami=VIEWER)
    store.add(ROOT_X, ALICE, post("hello"), timestamp=T1)
    store.add(REPLY_Y, BOB, post("hi alice", root=ROOT_X), timestamp=T2)
    store.add(NESTED_Z, CAROL, post("hi bob", root=ROOT_X, fork=REPLY_Y), timestamp=T3)
    store.add(VOTE_ON_Y, VIEWER, vote(REPLY_Y), timestamp=T4)
    store.set_about(ALICE, "name", "alice")
    return store
