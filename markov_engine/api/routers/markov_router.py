from dataclasses import asdict
from typing import Optional

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel, ConfigDict, Field

from markov_engine.services.errors import (
    DirectionDisabledError,
    EmptyInputError,
    NotReadyError,
    OrderMismatchError,
    OrderTooLargeError,
    UnknownModelError,
)
from markov_engine.services.generator import GenerationMode
from markov_engine.services.markov_system import MarkovSystem
from markov_engine.services.tokenizer import detokenize

router = APIRouter()


class TrainRequest(BaseModel):
    model_config = ConfigDict(protected_namespaces=())

    model_id: str = "default"
    text: str
    order: Optional[int] = Field(default=None, ge=1)
    reset: bool = False


class GenerateRequest(BaseModel):
    model_config = ConfigDict(protected_namespaces=())

    model_id: str = "default"
    length: Optional[int] = Field(default=None, ge=0)
    mode: Optional[GenerationMode] = None
    anchor: str = ""
    seed: Optional[int] = None


def _system(request: Request) -> MarkovSystem:
    system = getattr(request.app.state, "markov_system", None)
    if system is None or not system.ready:
        raise HTTPException(status_code=503, detail="markov system not ready")
    return system


def _raise_http(e: Exception):
    if isinstance(e, UnknownModelError):
        raise HTTPException(status_code=404, detail=str(e))
    if isinstance(e, OrderMismatchError):
        raise HTTPException(status_code=409, detail=str(e))
    if isinstance(e, NotReadyError):
        raise HTTPException(status_code=503, detail=str(e))
    if isinstance(e, (EmptyInputError, OrderTooLargeError, DirectionDisabledError, ValueError)):
        raise HTTPException(status_code=400, detail=str(e))
    raise e


@router.post("/train")
async def train(req: TrainRequest, request: Request):
    system = _system(request)
    try:
        job = system.train(req.model_id, req.text, order=req.order, reset=req.reset)
    except Exception as e:
        _raise_http(e)
    return {"ok": True, "data": job.to_dict()}


@router.get("/jobs/{job_id}")
async def job_status(job_id: int, request: Request):
    job = _system(request).job(job_id)
    if job is None:
        raise HTTPException(status_code=404, detail=f"unknown job {job_id}")
    return {"ok": True, "data": job.to_dict()}


@router.post("/generate")
async def generate(req: GenerateRequest, request: Request):
    system = _system(request)
    try:
        tokens = system.generate_tokens(
            req.model_id,
            length=req.length,
            mode=req.mode,
            anchor=req.anchor or None,
            seed=req.seed,
        )
    except Exception as e:
        _raise_http(e)
    return {"ok": True, "data": {"text": detokenize(tokens), "tokens": tokens}}


@router.post("/reset/{model_id}")
async def reset(model_id: str, request: Request):
    system = _system(request)
    try:
        system.reset(model_id)
    except Exception as e:
        _raise_http(e)
    return {"ok": True, "model": model_id}


@router.get("/models")
async def list_models(request: Request):
    return {"ok": True, "data": {"models": _system(request).list_models()}}


@router.get("/models/{model_id}")
async def model_stats(model_id: str, request: Request):
    system = _system(request)
    try:
        stats = system.model_stats(model_id)
    except Exception as e:
        _raise_http(e)
    return {"ok": True, "data": asdict(stats)}
