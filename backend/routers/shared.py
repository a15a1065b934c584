from typing import Any, Dict, Iterable, List, Optional

from models import Evaluation, Project, Submission
from schemas import EvaluationResponse, ProjectResponse, SubmissionResponse


def ok(data: Any = None, **extra) -> Dict[str, Any]:
    payload = {"success": True, "data": data}
    payload.update(extra)
    return payload


def ok_list(items: List[Any], **extra) -> Dict[str, Any]:
    return ok(items, count=len(items), **extra)


def project_out(project: Project) -> ProjectResponse:
    return ProjectResponse.model_validate(project)


def projects_out(projects: Iterable[Project]) -> List[ProjectResponse]:
    return [project_out(project) for project in projects]


def evaluation_out(evaluation: Optional[Evaluation]) -> Optional[EvaluationResponse]:
    if evaluation is None:
        return None
    return EvaluationResponse.model_validate(evaluation)


def submission_out(submission: Submission) -> SubmissionResponse:
    return SubmissionResponse.model_validate(submission)
