"""FastAPI application entrypoint for promptforge service mode."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, TypeVar

from fastapi import Depends, FastAPI
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from ..config import load_config
from ..logging import configure_logging
from ..models import EnhancementOptions, PromptLibraryItem, PromptTarget, PromptTemplate
from ..optimizer import ModelFamily, OptimizationInput, ScenarioProfile, UserOverrides
from ..stores.library import format_timestamp
from ..stores.templates import TemplateSort
from ..workbench import Workbench

_T = TypeVar("_T")


class QualityCheckModel(BaseModel):
    id: str
    title: str
    passed: bool
    severity: str
    detail: Optional[str] = None


class ForgeRequest(BaseModel):
    text: str
    target: Optional[str] = None
    options: Optional[Dict[str, bool]] = None
    variables: Dict[str, str] = {}
    record: bool = True


class ForgeResponse(BaseModel):
    target: str
    generated_prompt: str
    resolved_input: str
    detected_variables: List[str]
    unfilled_variables: List[str]
    passed: bool
    quality_checks: List[QualityCheckModel]


class OptimizeRequest(BaseModel):
    text: str
    model_family: str = "openai"
    scenario: str = "general"
    target: Optional[str] = None
    temperature: Optional[float] = None
    top_p: Optional[float] = None
    max_tokens: Optional[int] = None
    strict_json: Optional[bool] = None
    disable_system_preamble: bool = False
    advise: bool = False


class OptimizeResponse(BaseModel):
    optimized_text: str
    system_preamble: Optional[str] = None
    temperature: float
    top_p: float
    max_tokens: int
    applied_rules: List[str]
    warnings: List[str]
    selected_candidate: str
    score: int
    breakdown: Dict[str, int] = {}
    advisory: Optional[str] = None


class DiffRequest(BaseModel):
    old: str
    new: str


class DiffLineModel(BaseModel):
    kind: str
    text: str


class DiffResponse(BaseModel):
    lines: List[DiffLineModel]


class VersionModel(BaseModel):
    id: str
    created_at: str
    content: str
    note: Optional[str] = None


class PromptModel(BaseModel):
    id: str
    title: str
    body: str
    category_id: Optional[str] = None
    category_name: str
    tag_ids: List[str]
    versions: List[VersionModel]
    created_at: str
    updated_at: str


class CreatePromptRequest(BaseModel):
    title: str
    body: str
    category_id: Optional[str] = None
    tag_ids: List[str] = []


class AddVersionRequest(BaseModel):
    content: str
    note: Optional[str] = None


class RollbackRequest(BaseModel):
    version_id: str


class TemplateModel(BaseModel):
    id: str
    name: str
    content: str
    target: str
    category: str
    tags: List[str]
    created_at: str
    updated_at: str


class HealthResponse(BaseModel):
    status: str


def _default_workbench() -> Workbench:
    return Workbench(load_config(Path(".")))


async def _in_executor(func: Callable[[], _T]) -> _T:
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:  # pragma: no cover - fallback path when not in async context
        return func()
    return await loop.run_in_executor(None, func)


def create_app(
    workbench_factory: Callable[[], Workbench] = _default_workbench,
) -> FastAPI:
    """Create the FastAPI application exposing promptforge operations."""

    app = FastAPI(title="promptforge Service", version="1.0.0")

    async def get_workbench() -> Workbench:
        return workbench_factory()

    @app.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        return HealthResponse(status="ok")

    @app.post("/forge", response_model=ForgeResponse)
    async def forge(
        payload: ForgeRequest,
        workbench: Workbench = Depends(get_workbench),
    ) -> ForgeResponse:
        def _run_forge() -> ForgeResponse:
            target = PromptTarget.parse(payload.target) if payload.target else None
            options = (
                EnhancementOptions.from_dict(payload.options)
                if payload.options is not None
                else None
            )
            result = workbench.forge(
                payload.text,
                target=target,
                options=options,
                variables=payload.variables,
                record=payload.record,
            )
            return ForgeResponse(
                target=result.target.value,
                generated_prompt=result.generated,
                resolved_input=result.resolved_input,
                detected_variables=list(result.resolution.detected),
                unfilled_variables=list(result.resolution.unfilled),
                passed=result.passed,
                quality_checks=[
                    QualityCheckModel(**check.to_dict()) for check in result.checks
                ],
            )

        return await _in_executor(_run_forge)

    @app.post("/optimize", response_model=OptimizeResponse)
    async def optimize(
        payload: OptimizeRequest,
        workbench: Workbench = Depends(get_workbench),
    ) -> OptimizeResponse:
        def _run_optimize() -> OptimizeResponse:
            request = OptimizationInput(
                raw_text=payload.text,
                model_family=ModelFamily.parse(payload.model_family),
                scenario=ScenarioProfile.parse(payload.scenario),
                target=PromptTarget.parse(payload.target) if payload.target else None,
                overrides=UserOverrides(
                    temperature=payload.temperature,
                    top_p=payload.top_p,
                    max_tokens=payload.max_tokens,
                    strict_json=payload.strict_json,
                    disable_system_preamble=payload.disable_system_preamble,
                ),
            )
            output = workbench.optimize(request, advise=payload.advise)
            return OptimizeResponse(
                optimized_text=output.optimized_text,
                system_preamble=output.system_preamble,
                temperature=output.temperature,
                top_p=output.top_p,
                max_tokens=output.max_tokens,
                applied_rules=output.applied_rules,
                warnings=output.warnings,
                selected_candidate=output.selected_candidate,
                score=output.score,
                breakdown=dict(output.breakdown),
                advisory=output.advisory,
            )

        return await _in_executor(_run_optimize)

    @app.post("/diff", response_model=DiffResponse)
    async def diff_texts(
        payload: DiffRequest,
        workbench: Workbench = Depends(get_workbench),
    ) -> DiffResponse:
        lines = workbench.diff(payload.old, payload.new)
        return DiffResponse(
            lines=[DiffLineModel(kind=line.kind.value, text=line.text) for line in lines]
        )

    @app.get("/library/prompts", response_model=List[PromptModel])
    async def list_prompts(
        query: str = "",
        category_id: Optional[str] = None,
        tag_id: Optional[str] = None,
        workbench: Workbench = Depends(get_workbench),
    ) -> List[PromptModel]:
        library = workbench.library
        prompts = library.search(query, category_id=category_id, tag_id=tag_id)
        return [
            _prompt_model(prompt, library.category_name(prompt.category_id))
            for prompt in prompts
        ]

    @app.post("/library/prompts", response_model=PromptModel)
    async def create_prompt(
        payload: CreatePromptRequest,
        workbench: Workbench = Depends(get_workbench),
    ) -> PromptModel:
        def _run_create() -> PromptModel:
            library = workbench.library
            prompt = library.create_prompt(
                payload.title,
                payload.body,
                category_id=payload.category_id,
                tag_ids=payload.tag_ids,
            )
            return _prompt_model(prompt, library.category_name(prompt.category_id))

        return await _in_executor(_run_create)

    @app.post("/library/prompts/{prompt_id}/versions", response_model=PromptModel)
    async def add_version(
        prompt_id: str,
        payload: AddVersionRequest,
        workbench: Workbench = Depends(get_workbench),
    ) -> PromptModel:
        def _run_add() -> PromptModel:
            library = workbench.library
            library.add_version(prompt_id, payload.content, payload.note)
            prompt = library.get_prompt(prompt_id)
            return _prompt_model(prompt, library.category_name(prompt.category_id))

        return await _in_executor(_run_add)

    @app.post("/library/prompts/{prompt_id}/rollback", response_model=PromptModel)
    async def rollback(
        prompt_id: str,
        payload: RollbackRequest,
        workbench: Workbench = Depends(get_workbench),
    ) -> PromptModel:
        def _run_rollback() -> PromptModel:
            library = workbench.library
            library.rollback(prompt_id, payload.version_id)
            prompt = library.get_prompt(prompt_id)
            return _prompt_model(prompt, library.category_name(prompt.category_id))

        return await _in_executor(_run_rollback)

    @app.get("/templates", response_model=List[TemplateModel])
    async def list_templates(
        query: str = "",
        category: Optional[str] = None,
        target: Optional[str] = None,
        sort: str = "updated",
        workbench: Workbench = Depends(get_workbench),
    ) -> List[TemplateModel]:
        visible = workbench.templates.visible(
            query,
            category=category,
            target=PromptTarget.parse(target) if target else None,
            sort=TemplateSort.parse(sort),
        )
        return [_template_model(template) for template in visible]

    @app.exception_handler(LookupError)
    async def lookup_error_handler(_: Any, exc: LookupError) -> JSONResponse:
        detail = exc.args[0] if exc.args else exc
        return JSONResponse(status_code=404, content={"detail": str(detail)})

    @app.exception_handler(FileNotFoundError)
    async def file_not_found_handler(
        _: Any, exc: FileNotFoundError
    ) -> JSONResponse:  # pragma: no cover - simple mapping
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    @app.exception_handler(RuntimeError)
    async def runtime_error_handler(_: Any, exc: RuntimeError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    @app.exception_handler(ValueError)
    async def value_error_handler(_: Any, exc: ValueError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    return app


def _prompt_model(prompt: PromptLibraryItem, category_name: str) -> PromptModel:
    return PromptModel(
        id=prompt.id,
        title=prompt.title,
        body=prompt.body,
        category_id=prompt.category_id,
        category_name=category_name,
        tag_ids=list(prompt.tag_ids),
        versions=[
            VersionModel(
                id=version.id,
                created_at=format_timestamp(version.created_at),
                content=version.content,
                note=version.note,
            )
            for version in prompt.versions
        ],
        created_at=format_timestamp(prompt.created_at),
        updated_at=format_timestamp(prompt.updated_at),
    )


def _template_model(template: PromptTemplate) -> TemplateModel:
    return TemplateModel(
        id=template.id,
        name=template.name,
        content=template.content,
        target=template.target.value,
        category=template.category,
        tags=list(template.tags),
        created_at=format_timestamp(template.created_at),
        updated_at=format_timestamp(template.updated_at),
    )


def run_service(
    host: str = "127.0.0.1", port: int = 8000, *, config_path: Path | None = None
) -> None:  # pragma: no cover - integration path
    import uvicorn

    config = load_config(config_path or Path("."))
    configure_logging(level=config.logging.level, log_file=config.logging.file)
    app = create_app(lambda: Workbench(config))
    uvicorn.run(app, host=host, port=port)


__all__ = ["create_app", "run_service"]
