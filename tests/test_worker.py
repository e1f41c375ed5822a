import queue
from dataclasses import dataclass, field
from typing import List, Optional

import pytest

from beefykit.codec import ScaleDecoder, encode_uint
from beefykit.commitment import Commitment, SignedCommitment
from beefykit.gossip import GossipValidator, topic
from beefykit.metrics import Metrics, Registry
from beefykit.notification import Subscription, channel
from beefykit.primitives import (
    BEEFY_ENGINE_ID,
    AuthoritiesChange,
    ConsensusDigest,
    MmrRoot,
    ValidatorSet,
    VoteMessage,
    encode_consensus_log,
)
from beefykit.round import Rounds
from beefykit.worker import (
    BEEFY_PROTOCOL_NAME,
    BeefyWorker,
    FinalityNotification,
    Header,
    beefy_peers_set_config,
    find_authorities_change,
    find_mmr_root_digest,
)

ALICE = b"\x01" * 33
BOB = b"\x02" * 33
CHARLIE = b"\x03" * 33
DAVE = b"\x04" * 33
ROOT = b"\xab" * 32
HASH = b"\x55" * 32


def raw(value):
    return bytes(value)


def enc_number(number):
    return encode_uint(number, 4)


def dec_id(decoder):
    return decoder.read(33)


def signature_for(authority_id):
    return authority_id[:1] * 65


def decode_vote(data):
    return VoteMessage.decode(
        ScaleDecoder(data), lambda d: d.read(32), lambda d: d.uint(4), dec_id, lambda d: d.read(65)
    )


def authorities_digest(validators, set_id):
    log = AuthoritiesChange(ValidatorSet(list(validators), set_id))
    return ConsensusDigest(BEEFY_ENGINE_ID, encode_consensus_log(log, raw))


def mmr_digest(root=ROOT):
    return ConsensusDigest(BEEFY_ENGINE_ID, encode_consensus_log(MmrRoot(root), raw))


class FakeClient:
    def __init__(self, finalized_number=0, validator_set=None):
        self.finalized_number = finalized_number
        self._set = validator_set
        self.queried: List[bytes] = []

    def validator_set(self, block_hash):
        self.queried.append(block_hash)
        if self._set is None:
            raise RuntimeError("no validator set available")
        return self._set


class FakeKeyStore:
    def __init__(self, keys):
        self.keys = set(keys)
        self.signed: List[bytes] = []

    def has_key(self, authority_id):
        return authority_id in self.keys

    def sign(self, authority_id, message):
        if authority_id not in self.keys:
            return None
        self.signed.append(message)
        return signature_for(authority_id)


class FailingKeyStore(FakeKeyStore):
    def sign(self, authority_id, message):
        raise OSError("keystore locked")


class ShortSignatureKeyStore(FakeKeyStore):
    def sign(self, authority_id, message):
        return b"\x00" * 10


class FakeGossipEngine:
    def __init__(self):
        self.messages = []

    def gossip_message(self, message_topic, message, force):
        self.messages.append((message_topic, message, force))


@dataclass
class Harness:
    worker: BeefyWorker
    subscription: Subscription
    engine: FakeGossipEngine
    validator: GossipValidator
    key_store: FakeKeyStore
    client: FakeClient
    metrics: Optional[Metrics] = None


def make_harness(keys=(ALICE,), key_store=None, client=None, min_block_delta=1, with_metrics=False):
    sender, stream = channel()
    subscription = stream.subscribe()
    engine = FakeGossipEngine()
    validator = GossipValidator(decode_vote, lambda message: True)
    key_store = key_store if key_store is not None else FakeKeyStore(keys)
    client = client if client is not None else FakeClient()
    metrics = Metrics.register(Registry()) if with_metrics else None
    worker = BeefyWorker(client, key_store, sender, engine, validator, min_block_delta, metrics)
    return Harness(worker, subscription, engine, validator, key_store, client, metrics)


def assert_nothing_received(subscription):
    with pytest.raises(queue.Empty):
        subscription.get(timeout=0.01)


def test_peers_set_config():
    config = beefy_peers_set_config()
    assert config.notifications_protocol == BEEFY_PROTOCOL_NAME == "/paritytech/beefy/1"
    assert config.max_notification_size == 1024 * 1024
    assert (config.in_peers, config.out_peers) == (25, 25)
    assert config.reserved_nodes == ()
    assert config.accept_non_reserved is True


def test_find_mmr_root_skips_other_engines():
    other = ConsensusDigest(b"aura", encode_consensus_log(MmrRoot(b"\xcd" * 32), raw))
    header = Header(1, HASH, [other, mmr_digest()])
    assert find_mmr_root_digest(header, dec_id) == ROOT


def test_find_mmr_root_missing_or_malformed():
    assert find_mmr_root_digest(Header(1, HASH), dec_id) is None
    malformed = ConsensusDigest(BEEFY_ENGINE_ID, b"\x09")
    assert find_mmr_root_digest(Header(1, HASH, [malformed]), dec_id) is None


def test_find_authorities_change_returns_first():
    header = Header(1, HASH, [mmr_digest(), authorities_digest([ALICE], 4), authorities_digest([BOB], 5)])
    assert find_authorities_change(header, dec_id) == ValidatorSet([ALICE], 4)
    assert find_authorities_change(Header(1, HASH, [mmr_digest()]), dec_id) is None


def test_should_not_vote_without_best_beefy_block():
    harness = make_harness()
    assert harness.worker.best_beefy_block is None
    assert harness.worker.should_vote_on(1) is False


def test_should_vote_on_uses_min_delta_and_gap():
    harness = make_harness(min_block_delta=4)
    worker = harness.worker
    worker.best_beefy_block = 10
    worker.best_grandpa_block = 10
    assert worker.should_vote_on(4) is True
    assert worker.should_vote_on(5) is False
    worker.best_grandpa_block = 30
    assert worker.should_vote_on(16) is True
    assert worker.should_vote_on(4) is False


def test_single_validator_round_concludes():
    harness = make_harness(with_metrics=True)
    header = Header(1, HASH, [authorities_digest([ALICE], 0), mmr_digest()])
    harness.worker.handle_finality_notification(FinalityNotification(header))

    expected_commitment = Commitment(payload=ROOT, block_number=1, validator_set_id=0)
    received = harness.subscription.get(timeout=1)
    assert received == SignedCommitment(expected_commitment, [signature_for(ALICE)])
    assert harness.key_store.signed == [expected_commitment.encode(raw, enc_number)]
    assert harness.worker.best_beefy_block == 1
    assert harness.worker.best_block_voted_on == 1

    assert len(harness.engine.messages) == 1
    message_topic, message, force = harness.engine.messages[0]
    assert message_topic == topic()
    assert force is False
    assert decode_vote(message) == VoteMessage(expected_commitment, ALICE, signature_for(ALICE))

    assert harness.validator.is_live(1)
    assert harness.metrics.beefy_gadget_votes.value == 1
    assert harness.metrics.beefy_validator_set_id.value == 0


def test_no_local_key_means_no_vote():
    harness = make_harness(keys=())
    header = Header(1, HASH, [authorities_digest([ALICE], 0), mmr_digest()])
    harness.worker.handle_finality_notification(FinalityNotification(header))
    assert harness.worker.rounds.validators() == [ALICE]
    assert harness.engine.messages == []
    assert harness.worker.best_block_voted_on == 0


def test_missing_mmr_root_means_no_vote():
    harness = make_harness()
    header = Header(1, HASH, [authorities_digest([ALICE], 0)])
    harness.worker.handle_finality_notification(FinalityNotification(header))
    assert harness.engine.messages == []
    assert harness.worker.best_block_voted_on == 0


@pytest.mark.parametrize("store_class", [FailingKeyStore, ShortSignatureKeyStore])
def test_signing_errors_prevent_vote(store_class):
    harness = make_harness(key_store=store_class([ALICE]))
    header = Header(1, HASH, [authorities_digest([ALICE], 0), mmr_digest()])
    harness.worker.handle_finality_notification(FinalityNotification(header))
    assert harness.engine.messages == []
    assert harness.worker.best_block_voted_on == 0
    assert_nothing_received(harness.subscription)


def test_validator_set_from_client_when_digest_has_none():
    client = FakeClient(validator_set=ValidatorSet([ALICE], 0))
    harness = make_harness(client=client)
    header = Header(1, HASH, [mmr_digest()])
    harness.worker.handle_finality_notification(FinalityNotification(header))
    assert client.queried == [HASH]
    assert len(harness.engine.messages) == 1


def test_client_failure_keeps_empty_rounds():
    harness = make_harness()
    header = Header(3, HASH, [mmr_digest()])
    harness.worker.handle_finality_notification(FinalityNotification(header))
    assert harness.worker.best_grandpa_block == 3
    assert harness.worker.rounds.validator_set_id() == 0
    assert harness.worker.rounds.validators() == []
    assert harness.engine.messages == []


def test_same_non_genesis_set_keeps_rounds():
    harness = make_harness(keys=(), min_block_delta=5)
    worker = harness.worker
    worker.handle_finality_notification(
        FinalityNotification(Header(1, HASH, [authorities_digest([ALICE, BOB], 1)]))
    )
    rounds_before = worker.rounds
    worker.handle_finality_notification(
        FinalityNotification(Header(2, HASH, [authorities_digest([ALICE, BOB], 1)]))
    )
    assert worker.rounds is rounds_before
    assert worker.best_beefy_block == 1
    assert worker.best_grandpa_block == 2


def test_genesis_set_always_restarts_rounds():
    harness = make_harness(keys=(), min_block_delta=5)
    worker = harness.worker
    worker.handle_finality_notification(
        FinalityNotification(Header(1, HASH, [authorities_digest([ALICE], 0)]))
    )
    rounds_before = worker.rounds
    worker.handle_finality_notification(
        FinalityNotification(Header(2, HASH, [authorities_digest([ALICE], 0)]))
    )
    assert worker.best_beefy_block == 2
    assert worker.rounds is not rounds_before


def test_handle_vote_reaches_threshold():
    harness = make_harness()
    worker = harness.worker
    worker.rounds = Rounds(ValidatorSet([ALICE, BOB, CHARLIE, DAVE], 3))
    round_key = (ROOT, 7)

    worker.handle_vote(round_key, (ALICE, signature_for(ALICE)))
    worker.handle_vote(round_key, (BOB, signature_for(BOB)))
    worker.handle_vote(round_key, (ALICE, signature_for(ALICE)))
    assert_nothing_received(harness.subscription)
    assert worker.best_beefy_block is None

    worker.handle_vote(round_key, (CHARLIE, signature_for(CHARLIE)))
    received = harness.subscription.get(timeout=1)
    assert received == SignedCommitment(
        Commitment(payload=ROOT, block_number=7, validator_set_id=3),
        [signature_for(ALICE), signature_for(BOB), signature_for(CHARLIE), None],
    )
    assert worker.best_beefy_block == 7
    assert harness.validator.live_rounds == (7,)


def test_run_processes_notifications_and_gossip():
    harness = make_harness()
    header = Header(1, HASH, [authorities_digest([ALICE, BOB], 0), mmr_digest()])
    commitment = Commitment(payload=ROOT, block_number=1, validator_set_id=0)
    bob_vote = VoteMessage(commitment, BOB, signature_for(BOB)).encode(raw, enc_number, raw, raw)

    harness.worker.run([FinalityNotification(header), b"\x00", bob_vote])

    received = harness.subscription.get(timeout=1)
    assert received == SignedCommitment(commitment, [signature_for(ALICE), signature_for(BOB)])
    assert harness.worker.best_beefy_block == 1
    assert len(harness.engine.messages) == 1


def test_run_accepts_decoded_votes():
    harness = make_harness()
    harness.worker.rounds = Rounds(ValidatorSet([BOB], 2))
    commitment = Commitment(payload=ROOT, block_number=9, validator_set_id=2)
    harness.worker.run([VoteMessage(commitment, BOB, signature_for(BOB))])
    received = harness.subscription.get(timeout=1)
    assert received == SignedCommitment(commitment, [signature_for(BOB)])