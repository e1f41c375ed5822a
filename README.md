# beefykit

Building blocks for the BEEFY bridge-finality protocol. BEEFY is a voting
gadget that runs next to a finality gadget such as GRANDPA. Its validators
sign compact commitments that light clients on other chains can verify.

## What is in the package

- `beefykit.codec`: SCALE encoding and decoding. `encode_uint`,
  `encode_compact`, `encode_bytes`, `encode_str`, `encode_bool`,
  `encode_option` and `encode_vec` build bytes; `ScaleDecoder` reads them
  back and raises `CodecError` on malformed or truncated input.
- `beefykit.commitment`: `Commitment` (payload, block number, validator set
  id) and `SignedCommitment` (a commitment with one optional signature per
  validator). Commitments are ordered by validator set id first and block
  number second.
- `beefykit.witness`: `SignedCommitmentWitness.from_signed` splits a signed
  commitment into a bit vector of signers, a merkle root computed by a
  function you pass in, and the full signature list.
- `beefykit.primitives`: `ValidatorSet`, the consensus log items
  `AuthoritiesChange`, `OnDisabled` and `MmrRoot` with
  `encode_consensus_log` / `decode_consensus_log`, `ConsensusDigest` and
  `VoteMessage`.
- `beefykit.round`: `Rounds` collects votes per `(payload, block number)`
  round. A round among `n` validators is done once it has
  `threshold(n) == n - (n - 1) // 3` distinct votes; `Rounds.drop` returns one
  signature slot per validator.
- `beefykit.gossip`: `GossipValidator` keeps or discards vote messages and
  treats votes outside the last few noted rounds as expired. All votes share
  one topic, `topic()`.
- `beefykit.notification`: `channel()` returns a `SignedCommitmentSender`
  and a `SignedCommitmentStream`; `stream.subscribe()` gives a `Subscription`
  with `get(timeout)` and `close()`.
- `beefykit.metrics`: `Gauge`, `Counter`, `Registry` and `Metrics`, which
  registers `beefy_validator_set_id` and `beefy_gadget_votes_total`.
- `beefykit.errors`: `CryptoError` and its subclasses `InvalidSignature` and
  `CannotSign`.
- `beefykit.worker`: `BeefyWorker` reacts to `FinalityNotification`s and
  votes, decides which blocks to vote on, signs commitments, gossips votes
  and notifies subscribers when a round concludes. You supply a client
  (`finalized_number`, `validator_set(block_hash)`), a key store
  (`has_key(id)`, `sign(id, message)`) and a gossip engine
  (`gossip_message(topic, message, force)`). `BeefyWorker.run(events)` takes
  an iterable of finality notifications, `VoteMessage`s or raw vote bytes.
- `beefykit.pallet`: `BeefyPallet` tracks the current and next authority
  sets and the validator set id across sessions, and records set changes and
  disabled authorities as `ConsensusDigest` items in `digest`.
- `beefykit.hexutil`, `beefykit.mmr`, `beefykit.uncompress`: hex parsing,
  MMR leaf decoding (`decode_leaf`, `MmrLeaf`), MMR offchain storage keys
  (`storage_key`) and conversion of 33-byte compressed secp256k1 authority
  ids to 65-byte uncompressed keys (`uncompress_beefy_ids`).

## Installation

```
pip install beefykit
```

With the test dependencies:

```
pip install "beefykit[test]"
```

## Library example

```python
from beefykit.codec import ScaleDecoder, encode_str, encode_uint
from beefykit.commitment import Commitment, SignedCommitment

commitment = Commitment(payload="Hello World!", block_number=5, validator_set_id=0)
signed = SignedCommitment(commitment, [None, None, b"\x01\x02\x03\x04", b"\x05\x06\x07\x08"])
print(signed.no_of_signatures())  # 2

encoded = commitment.encode(encode_str, lambda n: encode_uint(n, 16))
decoded = Commitment.decode(
    ScaleDecoder(encoded),
    ScaleDecoder.str,
    lambda d: d.uint(16),
)
assert decoded == commitment
```

## Command line

```
beefykit --help
beefykit uncompress-beefy-id --authority 0x<scale-encoded compressed key>
beefykit uncompress-beefy-id --authorities 0x<scale-encoded vector of keys>
beefykit mmr decode-leaf 0x<double scale-encoded leaf>
beefykit mmr storage-key mmr 42
```

`uncompress-beefy-id` prints the uncompressed form of each key.
`mmr decode-leaf` prints the decoded leaf; `mmr storage-key` prints the key
as hex. Hex arguments may be given with or without a `0x` prefix. Errors are
printed to standard error and the command exits with status 1.

## What the package does not do

- It does not generate or verify merkle trie proofs over authority ids or
  parachain heads; there are no commands for that.
- It is not a node: there is no networking, block import, runtime or RPC
  server. `BeefyWorker` and `BeefyPallet` work on the objects you hand them.
- It has no signature scheme of its own for votes: signing and verification
  are the functions and key store you supply.