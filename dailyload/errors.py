class PipelineError(RuntimeError):
    stage = "pipeline"

    def __init__(self, message: str, *, stage: str | None = None, entity: str | None = None) -> None:
        super().__init__(message)
        if stage is not None:
            self.stage = stage
        self.entity = entity


class MissingExtractFile(PipelineError):
    stage = "await_files"


class CopyVerificationFailure(PipelineError):
    stage = "copy_extracts"


class DateMismatch(PipelineError):
    stage = "validate_dates"


class BadRecordThreshold(PipelineError):
    stage = "validate_bad_records"


class TransformExecutionFailure(PipelineError):
    stage = "run_transform_sql"


class ErrorKeywordDetected(PipelineError):
    stage = "scan_output"


class ProcessorNotImplemented(PipelineError):
    stage = "load_entities"


class RecordDecodeError(ValueError):
    pass


class DateFormatError(ValueError):
    pass
