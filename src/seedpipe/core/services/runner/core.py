from typing import List, Optional, Protocol

from seedpipe.core.models import (
    ExecutionContext,
    ExecutionResult,
    RunResult,
    RunState,
    RunStatus,
)
from seedpipe.core.services.executor import OperationExecutor
from seedpipe.model import OperationType, PipelineDefinition


class Workspace(Protocol):
    def cleanup(self) -> None: ...


class PipelineRunner:
    """
    Runs the operations of one pipeline strictly in order.

    Idle -> Running(i) -> Succeeded | Failed. The first failing operation
    stops the run, there are no retries. The workspace is cleaned up exactly
    once on every way out: success, failure, unexpected error or an aborted
    job (CancelledError / KeyboardInterrupt are re-raised after cleanup).
    """

    def __init__(self, executor: OperationExecutor) -> None:
        self.executor = executor
        self.state = RunState.IDLE
        self.current_index: Optional[int] = None

    async def run(
        self,
        pipeline: PipelineDefinition,
        context: ExecutionContext,
        workspace: Optional[Workspace] = None,
    ) -> RunResult:
        logs: List[str] = [
            f"{pipeline.kind.value} pipeline of {pipeline.service_name}: "
            f"{len(pipeline.operations)} operation(s)"
        ]
        warnings: List[str] = []
        completed: List[OperationType] = []
        failed_operation: Optional[OperationType] = None
        error_detail: Optional[str] = None
        error_type: Optional[str] = None

        self.state = RunState.RUNNING
        self.current_index = None
        try:
            for index, spec in enumerate(pipeline.operations):
                self.current_index = index
                try:
                    result = await self.executor.execute(spec, context)
                except Exception as e:
                    result = ExecutionResult.failed(e)

                logs.extend(result.logs)
                warnings.extend(result.warnings)

                if not result.success:
                    failed_operation = spec.operation_type
                    error_detail = result.error_detail
                    error_type = result.error_type
                    break

                context = context.with_updates(result.updated_context_fields)
                completed.append(spec.operation_type)
        except Exception as e:
            # bookkeeping itself broke, the run still ends as Failed
            if self.current_index is not None and self.current_index < len(pipeline.operations):
                failed_operation = pipeline.operations[self.current_index].operation_type
            error_detail = str(e) or repr(e)
            error_type = e.__class__.__name__
        finally:
            # an aborted job also leaves operations unfinished
            if len(completed) < len(pipeline.operations) or error_detail is not None:
                self.state = RunState.FAILED
            self._cleanup(workspace, logs, warnings)

        if self.state != RunState.FAILED:
            self.state = RunState.SUCCEEDED
            logs.append(f"{pipeline.kind.value} pipeline of {pipeline.service_name} succeeded")
        else:
            logs.append(
                f"{pipeline.kind.value} pipeline of {pipeline.service_name} failed at "
                f"{failed_operation.value if failed_operation else 'start'}"
            )

        return RunResult(
            status=RunStatus.SUCCEEDED if self.state == RunState.SUCCEEDED else RunStatus.FAILED,
            service=pipeline.service_name,
            kind=pipeline.kind,
            failed_operation=failed_operation,
            error_detail=error_detail,
            error_type=error_type,
            completed_operations=completed,
            context=context,
            logs=logs,
            warnings=warnings,
        )

    @staticmethod
    def _cleanup(workspace: Optional[Workspace], logs: List[str], warnings: List[str]) -> None:
        if workspace is None:
            return
        try:
            workspace.cleanup()
            logs.append("Workspace removed.")
        except OSError as e:
            warnings.append(f"Could not remove workspace: {e}")
