"""Read-only access to the built-in mission phase templates."""

from fastapi import APIRouter

from quotebuilder.services.phase_templates import ProjectType, phase_templates_for

router = APIRouter(prefix="/phase-templates", tags=["phase-templates"])


@router.get("/{project_type}")
def list_phase_templates(project_type: ProjectType) -> list[dict[str, object]]:
    return [
        {
            "code": template.code,
            "name": template.name,
            "description": template.description,
            "default_percentage": str(template.default_percentage),
            "deliverables": list(template.deliverables),
        }
        for template in phase_templates_for(project_type)
    ]
