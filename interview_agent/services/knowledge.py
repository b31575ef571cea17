"""Knowledge sources: the raw material questions are generated from.

Scraping and uploads are slow external calls, so every operation that does
one first checks ownership, ends the read transaction, does the call, and
then re-checks ownership before inserting.
"""
from flask import current_app

from . import scraper, storage
from .agents import require_owned_agent, require_user
from ..extensions import db
from ..errors import InvalidSourceRequest, ScrapeFailed, SourceNotFound
from ..models.knowledge_source import KnowledgeSource


def _text(value, what):
    if not isinstance(value, str) or not value.strip():
        raise InvalidSourceRequest(f"{what} is required")
    return value.strip()


def add_topic_source(user_id, agent_id, topic):
    agent = require_owned_agent(user_id, agent_id)
    source = KnowledgeSource(agent_id=agent.id, type="topic", content=_text(topic, "Topic"))
    db.session.add(source)
    db.session.commit()
    return source


def add_url_source(user_id, agent_id, url):
    url = _text(url, "URL")
    if not scraper.is_valid_url(url):
        raise InvalidSourceRequest(f"Invalid URL: {url}")
    require_owned_agent(user_id, agent_id)
    db.session.commit()

    scraped = scraper.scrape_url(url)

    agent = require_owned_agent(user_id, agent_id)
    source = KnowledgeSource(
        agent_id=agent.id,
        type="url",
        content=url,
        scraped_content=scraper.extract_main_content(scraped["content"]),
        source_metadata={"title": scraped.get("title"), **(scraped.get("metadata") or {})},
    )
    db.session.add(source)
    db.session.commit()
    current_app.logger.info('Added URL source %s to agent %s (%s chars)',
                            source.id, agent.id, len(source.scraped_content or ''))
    return source


def search_web(user_id, query, max_results=10):
    require_user(user_id)
    return scraper.search(_text(query, "Search query"), max_results=max_results)


def add_web_search_sources(user_id, agent_id, urls):
    """Scrape each selected search result; failures and empty pages are skipped."""
    require_owned_agent(user_id, agent_id)
    db.session.commit()

    scraped = []
    for url in urls or []:
        try:
            result = scraper.scrape_url(url)
        except ScrapeFailed:
            current_app.logger.warning('Skipping search result %s: scrape failed', url)
            continue
        content = scraper.extract_main_content(result["content"])
        if not content:
            current_app.logger.warning('Skipping search result %s: no content', url)
            continue
        scraped.append((url, content, result))

    agent = require_owned_agent(user_id, agent_id)
    sources = []
    for url, content, result in scraped:
        source = KnowledgeSource(
            agent_id=agent.id,
            type="web_search",
            content=url,
            scraped_content=content,
            source_metadata={"title": result.get("title"), **(result.get("metadata") or {})},
        )
        db.session.add(source)
        sources.append(source)
    db.session.commit()
    return sources


def add_document_source(user_id, agent_id, filename, data, content_type):
    filename = _text(filename, "Filename")
    if not data:
        raise InvalidSourceRequest("Document is empty")
    require_owned_agent(user_id, agent_id)
    db.session.commit()

    upload = storage.upload_document(filename, data, content_type)
    scraped = scraper.scrape_document(upload.get("public_url") or upload["url"])

    agent = require_owned_agent(user_id, agent_id)
    source = KnowledgeSource(
        agent_id=agent.id,
        type="document",
        content=filename,
        scraped_content=scraper.extract_main_content(scraped["content"]),
        document_url=upload["url"],
        source_metadata={
            "fileSize": upload["file_size"],
            "contentType": content_type,
            "storageKey": upload["key"],
        },
    )
    db.session.add(source)
    db.session.commit()
    return source


def delete_source(user_id, source_id):
    source = db.session.get(KnowledgeSource, source_id)
    if source is None:
        raise SourceNotFound()
    require_owned_agent(user_id, source.agent_id)
    db.session.delete(source)
    db.session.commit()


def list_sources(user_id, agent_id):
    agent = require_owned_agent(user_id, agent_id)
    return list(agent.knowledge_sources)


def combined_content(agent_id):
    """Text fed to question generation, one block per source."""
    sources = KnowledgeSource.query.filter_by(agent_id=agent_id).order_by(KnowledgeSource.id).all()
    parts = []
    for s in sources:
        if s.type == "topic":
            parts.append(f"Topic: {s.content}")
        elif s.scraped_content:
            parts.append(s.scraped_content)
    return "\n\n".join(parts).strip()
