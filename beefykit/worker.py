"""The voting worker: turns finality notifications and gossiped votes into signed commitments."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, List, Optional, Protocol, Tuple

from beefykit.codec import ScaleDecoder, encode_uint
from beefykit.commitment import Commitment, SignedCommitment
from beefykit.errors import CannotSign, CryptoError, InvalidSignature
from beefykit.gossip import GossipValidator, topic
from beefykit.metrics import Metrics
from beefykit.notification import SignedCommitmentSender
from beefykit.primitives import (
    BEEFY_ENGINE_ID,
    GENESIS_AUTHORITY_SET_ID,
    AuthoritiesChange,
    ConsensusDigest,
    MmrRoot,
    ValidatorSet,
    VoteMessage,
    decode_consensus_log,
)
from beefykit.round import Rounds

logger = logging.getLogger("beefy")

BEEFY_PROTOCOL_NAME = "/paritytech/beefy/1"

_HASH_LENGTH = 32
# Compressed ECDSA public keys and recoverable ECDSA signatures.
_ID_LENGTH = 33
_SIGNATURE_LENGTH = 65
_U32_MAX = (1 << 32) - 1


class _Client(Protocol):
    finalized_number: int

    def validator_set(self, block_hash: bytes) -> ValidatorSet: ...


class _KeyStore(Protocol):
    def has_key(self, authority_id: bytes) -> bool: ...

    def sign(self, authority_id: bytes, message: bytes) -> Optional[bytes]: ...


class _GossipEngine(Protocol):
    def gossip_message(self, topic: bytes, message: bytes, force: bool) -> None: ...


def _encode_number(number: int) -> bytes:
    return encode_uint(number, 4)


def _decode_id(decoder: ScaleDecoder) -> bytes:
    return decoder.read(_ID_LENGTH)


def _decode_vote(data: bytes) -> VoteMessage:
    return VoteMessage.decode(
        ScaleDecoder(data),
        lambda d: d.read(_HASH_LENGTH),
        lambda d: d.uint(4),
        _decode_id,
        lambda d: d.read(_SIGNATURE_LENGTH),
    )


def _next_power_of_two(value: int) -> int:
    return 1 if value <= 1 else 1 << (value - 1).bit_length()


@dataclass
class Header:
    """The parts of a block header the worker looks at."""

    number: int
    hash: bytes
    digest: List[Any] = field(default_factory=list)


@dataclass
class FinalityNotification:
    """Notice that the block with ``header`` has been finalized."""

    header: Header


@dataclass(frozen=True)
class PeersSetConfig:
    """Network peer-set settings for the gossip protocol."""

    notifications_protocol: str
    max_notification_size: int
    in_peers: int
    out_peers: int
    reserved_nodes: Tuple[str, ...] = ()
    accept_non_reserved: bool = True


def beefy_peers_set_config() -> PeersSetConfig:
    """Return the peer-set settings for the vote gossip protocol."""
    return PeersSetConfig(
        notifications_protocol=BEEFY_PROTOCOL_NAME,
        max_notification_size=1024 * 1024,
        in_peers=25,
        out_peers=25,
        reserved_nodes=(),
        accept_non_reserved=True,
    )


def _beefy_logs(header: Header, decode_id: Callable[[ScaleDecoder], Any]) -> Iterable[Any]:
    for item in header.digest:
        if not isinstance(item, ConsensusDigest) or item.engine_id != BEEFY_ENGINE_ID:
            continue
        try:
            yield decode_consensus_log(item.data, decode_id)
        except ValueError:
            continue


def find_mmr_root_digest(
    header: Header, decode_id: Callable[[ScaleDecoder], Any]
) -> Optional[bytes]:
    """Return the MMR root hash from the header digest, if there is one."""
    return next(
        (log.root for log in _beefy_logs(header, decode_id) if isinstance(log, MmrRoot)),
        None,
    )


def find_authorities_change(
    header: Header, decode_id: Callable[[ScaleDecoder], Any]
) -> Optional[ValidatorSet]:
    """Return the first validator set change signalled in the header digest, if any."""
    return next(
        (
            log.validator_set
            for log in _beefy_logs(header, decode_id)
            if isinstance(log, AuthoritiesChange)
        ),
        None,
    )


class BeefyWorker:
    """Plays the voting protocol for one node.

    ``client`` provides ``finalized_number`` and ``validator_set(block_hash)``;
    ``key_store`` provides ``has_key(id)`` and ``sign(id, message)``;
    ``gossip_engine`` provides ``gossip_message(topic, message, force)``.
    """

    def __init__(
        self,
        client: _Client,
        key_store: _KeyStore,
        signed_commitment_sender: SignedCommitmentSender,
        gossip_engine: _GossipEngine,
        gossip_validator: GossipValidator,
        min_block_delta: int,
        metrics: Optional[Metrics] = None,
    ) -> None:
        self.client = client
        self.key_store = key_store
        self.signed_commitment_sender = signed_commitment_sender
        self.gossip_engine = gossip_engine
        self.gossip_validator = gossip_validator
        self.min_block_delta = min_block_delta
        self.metrics = metrics
        self.rounds = Rounds(ValidatorSet.empty())
        # Best block a finality notification was received for.
        self.best_grandpa_block: int = client.finalized_number
        # Best block a voting round has been concluded for.
        self.best_beefy_block: Optional[int] = None
        # Best block this node has voted for.
        self.best_block_voted_on: int = 0

    def should_vote_on(self, number: int) -> bool:
        """Return whether this node should vote on block ``number``."""
        if self.best_beefy_block is None:
            logger.debug("Missing best BEEFY block - won't vote for: %r", number)
            return False
        diff = min(max(self.best_grandpa_block - self.best_beefy_block, 0), _U32_MAX)
        next_power_of_two = _next_power_of_two(diff // 2)
        next_block_to_vote_on = self.best_block_voted_on + max(
            self.min_block_delta, next_power_of_two
        )
        logger.debug(
            "should_vote_on: #%r, diff: %r, next_power_of_two: %r, next_block_to_vote_on: #%r",
            number,
            diff,
            next_power_of_two,
            next_block_to_vote_on,
        )
        return number == next_block_to_vote_on

    def _sign_commitment(self, authority_id: bytes, commitment: bytes) -> bytes:
        try:
            signature = self.key_store.sign(authority_id, commitment)
        except Exception as err:
            raise CannotSign(authority_id, str(err)) from err
        if signature is None:
            raise CannotSign(authority_id, "No key in KeyStore found")
        signature = bytes(signature)
        if len(signature) != _SIGNATURE_LENGTH:
            raise InvalidSignature(signature.hex(), authority_id)
        return signature

    def _validator_set(self, header: Header) -> Optional[ValidatorSet]:
        change = find_authorities_change(header, _decode_id)
        if change is not None:
            return change
        try:
            return self.client.validator_set(header.hash)
        except Exception as err:
            logger.debug("Cannot fetch validator set at %s: %s", header.hash.hex(), err)
            return None

    def _local_id(self) -> Optional[bytes]:
        return next(
            (vid for vid in self.rounds.validators() if self.key_store.has_key(vid)),
            None,
        )

    def handle_finality_notification(self, notification: FinalityNotification) -> None:
        """Track the finalized block and vote on it if it is due."""
        logger.debug("Finality notification: %r", notification)
        header = notification.header
        number = header.number
        self.best_grandpa_block = number

        active = self._validator_set(header)
        if active is not None:
            logger.debug("Active validator set id: %r", active)
            if self.metrics is not None:
                self.metrics.beefy_validator_set_id.set(active.id)
            # A set change, or the genesis set, starts new voting rounds.
            if active.id != self.rounds.validator_set_id() or active.id == GENESIS_AUTHORITY_SET_ID:
                self.rounds = Rounds(active)
                logger.debug("New Rounds for id: %r", active.id)
                self.best_beefy_block = number

        if not self.should_vote_on(number):
            return

        local_id = self._local_id()
        if local_id is None:
            logger.error("Missing validator id - can't vote for: %s", header.hash.hex())
            return

        mmr_root = find_mmr_root_digest(header, _decode_id)
        if mmr_root is None:
            logger.warning("No MMR root digest found for: %s", header.hash.hex())
            return

        commitment = Commitment(
            payload=mmr_root,
            block_number=number,
            validator_set_id=self.rounds.validator_set_id(),
        )
        try:
            signature = self._sign_commitment(local_id, commitment.encode(bytes, _encode_number))
        except CryptoError as err:
            logger.warning("Error signing commitment: %s", err)
            return

        self.best_block_voted_on = number
        message = VoteMessage(commitment=commitment, id=local_id, signature=signature)
        encoded_message = message.encode(bytes, _encode_number, bytes, bytes)

        if self.metrics is not None:
            self.metrics.beefy_gadget_votes.inc()

        logger.debug("Sent vote message: %r", message)
        self.handle_vote((mmr_root, number), (local_id, signature))
        self.gossip_engine.gossip_message(topic(), encoded_message, False)

    def handle_vote(self, round: Tuple[bytes, int], vote: Tuple[bytes, bytes]) -> None:
        """Record a vote and publish a signed commitment once the round concludes."""
        self.gossip_validator.note_round(round[1])
        vote_added = self.rounds.add_vote(round, vote)
        if not (vote_added and self.rounds.is_done(round)):
            return
        signatures = self.rounds.drop(round)
        if signatures is None:
            return
        commitment = Commitment(
            payload=round[0],
            block_number=round[1],
            validator_set_id=self.rounds.validator_set_id(),
        )
        signed_commitment = SignedCommitment(commitment=commitment, signatures=signatures)
        logger.info("Round #%s concluded, committed: %r.", round[1], signed_commitment)
        self.signed_commitment_sender.notify(signed_commitment)
        self.best_beefy_block = round[1]

    def run(self, events: Iterable[Any]) -> None:
        """Process finality notifications, vote messages and raw gossip until ``events`` ends."""
        for event in events:
            if isinstance(event, FinalityNotification):
                self.handle_finality_notification(event)
                continue
            if isinstance(event, VoteMessage):
                vote = event
            else:
                try:
                    vote = _decode_vote(bytes(event))
                except ValueError:
                    logger.debug("Undecodable vote message: %r", event)
                    continue
            logger.debug("Got vote message: %r", vote)
            self.handle_vote(
                (vote.commitment.payload, vote.commitment.block_number),
                (vote.id, vote.signature),
            )