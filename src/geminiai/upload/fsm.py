"""Protocol phase machine for a single resumable upload.

Each :class:`~geminiai.upload.session.UploadSession` owns one instance and
advances it before every step, so an out-of-order step (for example a
transfer without an upload URL) fails loudly instead of hitting the wire.

The machine only validates ordering; it has no callbacks and performs no I/O.
"""

from __future__ import annotations

from statemachine import State, StateMachine


class UploadPhaseSM(StateMachine):
    """Phases of the three-step resumable upload.

    States:
        created      -- Request resolved, nothing sent yet.
        initiating   -- ``start`` request in flight.
        transferring -- Upload URL negotiated, bytes in flight.
        finalizing   -- Transfer answered, decoding the file object.
        completed    -- A FileDescriptor was produced.
        failed       -- Any step failed; the session cannot be resumed.
    """

    created = State("created", initial=True, value="created")
    initiating = State("initiating", value="initiating")
    transferring = State("transferring", value="transferring")
    finalizing = State("finalizing", value="finalizing")
    completed = State("completed", final=True, value="completed")
    failed = State("failed", final=True, value="failed")

    initiate = created.to(initiating)
    transfer = initiating.to(transferring)
    finalize = transferring.to(finalizing)
    complete = finalizing.to(completed)
    fail = (
        created.to(failed)
        | initiating.to(failed)
        | transferring.to(failed)
        | finalizing.to(failed)
    )
