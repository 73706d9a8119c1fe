# app.py
from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from sql_cheatsheet.app import get_default_catalog
from sql_cheatsheet.errors import EmptyDocumentError, TopicNotFoundError

app = FastAPI(title="SQL Cheat Sheet", version="0.1.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"], allow_credentials=True,
    allow_methods=["GET"], allow_headers=["*"],
)


@app.exception_handler(EmptyDocumentError)
def empty_document(request, exc: EmptyDocumentError):
    return JSONResponse(status_code=503, content={"detail": str(exc)})


@app.get("/health")
def health():
    sheet = get_default_catalog()
    return {"ok": True, "topics": len(sheet), "concepts": sheet.concept_count}


@app.get("/topics")
def topics():
    sheet = get_default_catalog()
    return {
        "topics": [
            {"topic_id": e.topic_id, "title": e.title, "concepts": len(e.concepts)}
            for e in sheet
        ]
    }


@app.get("/topics/{title}")
def topic(title: str):
    sheet = get_default_catalog()
    try:
        entry = sheet.require_topic(title)
    except TopicNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return entry.model_dump(mode="json")


@app.get("/search")
def search(
    q: str = Query(..., description="Keyword to look for"),
    ranked: bool = False,
    k: int = Query(10, ge=1, le=100),
):
    sheet = get_default_catalog()
    hits = sheet.rank(q, top_k=k) if ranked else sheet.search(q)
    return {
        "query": q,
        "mode": "ranked" if ranked else "keyword",
        "count": len(hits),
        "results": [h.model_dump(mode="json") for h in hits],
    }
