# stepwise/core/executor.py

import logging
from typing import Any, Callable, Dict, List, Optional, Type

from ..interfaces.iteration_job import IterationJobInterface
from ..interfaces.interruption import InterruptionPolicyInterface
from ..interfaces.cursor_codec import CursorCodecInterface
from ..interfaces.event_bus import EventBus as EventBusInterface
from ..interfaces.run_state import JobPayload, RunOutcome, Resubmit
from ..events import EventType
from ..errors import CursorError, JobNotRegisteredError, PayloadError
from .runner import IterationRunner
from .dispatcher import ResumeDispatcher
from .interruption import InterruptionPolicy, StopPredicate
from .cursor_codec import JsonCursorCodec
from .event_bus import EventBus

logger = logging.getLogger(__name__)

PolicyFactory = Callable[[Optional[StopPredicate]], InterruptionPolicyInterface]


def check_arguments(job_class: str, arguments: Dict[str, Any],
                    codec: Optional[CursorCodecInterface] = None) -> None:
    """Raise PayloadError unless every argument comes back from the queue unchanged."""
    codec = codec or JsonCursorCodec()
    for key, value in arguments.items():
        if not isinstance(key, str):
            raise PayloadError(f"{job_class} argument names must be strings, got {key!r}")
        try:
            codec.validate(value)
        except CursorError as e:
            raise PayloadError(f"{job_class} argument {key!r} would not survive the queue: {e}") from e


class JobRegistry:
    """Maps the job class names stored in payloads to job classes."""

    def __init__(self):
        self._jobs: Dict[str, Type[IterationJobInterface]] = {}

    def register(self, job_cls: Type[IterationJobInterface], name: Optional[str] = None) -> Type[IterationJobInterface]:
        job_name = name or job_cls.__name__
        existing = self._jobs.get(job_name)
        if existing is not None and existing is not job_cls:
            logger.warning(f"Job name '{job_name}' re-registered: {existing!r} -> {job_cls!r}")
        self._jobs[job_name] = job_cls
        return job_cls

    def resolve(self, name: str) -> Type[IterationJobInterface]:
        try:
            return self._jobs[name]
        except KeyError:
            raise JobNotRegisteredError(f"No job registered under '{name}'") from None

    def names(self) -> List[str]:
        return sorted(self._jobs)


default_registry = JobRegistry()


def register_job(job_cls: Optional[Type[IterationJobInterface]] = None, *,
                 name: Optional[str] = None, registry: Optional[JobRegistry] = None):
    """Class decorator registering a job, with or without arguments."""
    target = registry or default_registry

    def decorator(cls: Type[IterationJobInterface]) -> Type[IterationJobInterface]:
        return target.register(cls, name)

    if job_cls is not None:
        return decorator(job_cls)
    return decorator


class JobExecutor:
    """
    Performs one payload: resolves the job class, runs it with a fresh
    runner and policy, and hands a ``Resubmit`` to the dispatcher.
    Errors propagate to the caller, which owns the failure channel.
    """

    def __init__(self,
                 registry: JobRegistry,
                 dispatcher: ResumeDispatcher,
                 policy_factory: Optional[PolicyFactory] = None,
                 codec: Optional[CursorCodecInterface] = None,
                 event_bus: Optional[EventBusInterface] = None,
                 resume_backoff: float = 0.0):
        self.registry = registry
        self.dispatcher = dispatcher
        self.policy_factory = policy_factory or (lambda predicate: InterruptionPolicy(predicate=predicate))
        self.codec = codec or JsonCursorCodec()
        self.event_bus = event_bus or EventBus()
        self.resume_backoff = resume_backoff

    @classmethod
    def from_config(cls, config, registry: JobRegistry, dispatcher: ResumeDispatcher,
                    shutdown_requested: Optional[Callable[[], bool]] = None,
                    codec: Optional[CursorCodecInterface] = None,
                    event_bus: Optional[EventBusInterface] = None) -> "JobExecutor":
        def policy_factory(predicate: Optional[StopPredicate]) -> InterruptionPolicyInterface:
            return InterruptionPolicy.from_config(config, shutdown_requested, predicate)

        return cls(registry, dispatcher, policy_factory, codec, event_bus, config.resume_backoff)

    def submit(self, job_class: Any, arguments: Optional[Dict[str, Any]] = None,
               job_id: Optional[str] = None) -> JobPayload:
        """Enqueue a fresh job. ``job_class`` may be a class or its registered name."""
        name = job_class if isinstance(job_class, str) else job_class.__name__
        self.registry.resolve(name)
        check_arguments(name, arguments or {}, self.codec)
        payload = JobPayload.new(name, arguments, job_id)
        handle = self.dispatcher.queue.enqueue(payload)
        logger.info(f"Enqueued {name} job {payload.job_id} as {handle}")
        self.event_bus.publish(EventType.JOB_ENQUEUED, job_id=payload.job_id, job_class=name, handle=handle)
        return payload

    def perform(self, payload: JobPayload) -> RunOutcome:
        job = self.registry.resolve(payload.job_class)()
        runner = IterationRunner(
            policy=self.policy_factory(job.should_stop),
            codec=self.codec,
            event_bus=self.event_bus,
            resume_backoff=self.resume_backoff,
        )
        outcome = runner.run_payload(job, payload)
        if isinstance(outcome, Resubmit):
            self.dispatcher.resubmit(payload, outcome)
        return outcome
