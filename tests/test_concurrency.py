import gc
import threading
import weakref
from concurrent.futures import ThreadPoolExecutor

from ballotbox import AlreadyVoted, WorkflowStatus
from ballotbox.core.locks import ReadWriteLock, get_election_lock

from conftest import OWNER


def test_concurrent_votes_are_all_counted(election):
    voters = [f"0xVoter{i}" for i in range(20)]
    for address in voters:
        election.add_voter(OWNER, address)
    election.start_proposals_registering(OWNER)
    election.add_proposal(voters[0], "A")
    election.add_proposal(voters[0], "B")
    election.end_proposals_registering(OWNER)
    election.start_voting_session(OWNER)

    with ThreadPoolExecutor(max_workers=8) as pool:
        list(pool.map(lambda i: election.set_vote(voters[i], i % 2), range(len(voters))))

    summary = election.summary()
    assert summary.total_votes == len(voters)
    assert [p.vote_count for p in election.list_proposals(voters[0])] == [10, 10]


def test_concurrent_double_vote_counts_once(election):
    election.add_voter(OWNER, "0xVoter")
    election.start_proposals_registering(OWNER)
    election.add_proposal("0xVoter", "A")
    election.end_proposals_registering(OWNER)
    election.start_voting_session(OWNER)

    outcomes = []

    def vote():
        try:
            election.set_vote("0xVoter", 0)
            outcomes.append("ok")
        except AlreadyVoted:
            outcomes.append("again")

    threads = [threading.Thread(target=vote) for _ in range(6)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert sorted(outcomes) == ["again"] * 5 + ["ok"]
    assert election.summary().total_votes == 1


def test_concurrent_proposals_get_dense_identifiers(election):
    election.add_voter(OWNER, "0xVoter")
    election.start_proposals_registering(OWNER)

    with ThreadPoolExecutor(max_workers=8) as pool:
        ids = list(pool.map(lambda i: election.add_proposal("0xVoter", f"p{i}"), range(16)))

    assert sorted(ids) == list(range(16))
    assert election.workflow_status() == WorkflowStatus.PROPOSALS_REGISTRATION_STARTED


def test_readers_share_the_lock():
    lock = ReadWriteLock()
    inside = threading.Barrier(2, timeout=5)
    errors = []

    def reader():
        with lock.read():
            try:
                inside.wait()
            except threading.BrokenBarrierError as e:
                errors.append(e)

    threads = [threading.Thread(target=reader) for _ in range(2)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert errors == []


def test_writer_excludes_readers():
    lock = ReadWriteLock()
    events = []
    writer_in = threading.Event()

    def writer():
        with lock.write():
            writer_in.set()
            events.append("write-start")
            threading.Event().wait(0.05)
            events.append("write-end")

    def reader():
        writer_in.wait(5)
        with lock.read():
            events.append("read")

    w = threading.Thread(target=writer)
    r = threading.Thread(target=reader)
    w.start()
    r.start()
    w.join()
    r.join()

    assert events == ["write-start", "write-end", "read"]


def test_same_election_shares_one_lock():
    assert get_election_lock("e-1") is get_election_lock("e-1")
    assert get_election_lock("e-1") is not get_election_lock("e-2")


def test_unused_election_lock_is_released():
    ref = weakref.ref(get_election_lock("e-unused"))
    gc.collect()
    assert ref() is None


def test_engine_keeps_its_lock_alive(election):
    ref = weakref.ref(get_election_lock(election.election_id))
    gc.collect()
    assert ref() is election._lock
