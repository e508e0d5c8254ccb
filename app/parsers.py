"""
idGames API response parsers

Both parsers turn a raw response body into the same normalised payload:

    {"content": {..., "vote_count": 12, "reviews": [{"text": ..., "vote": ...}]}}
    {"error": {"type": ..., "message": ...}}
    {"warning": {"type": ..., "message": ...}}

A body that cannot be decoded at all is a 'parse' error; deciding whether
the payload describes a usable file is ArchiveRecord.populate's job.
"""
import json
import xml.etree.ElementTree as ET
from typing import Any, Dict, Optional, Protocol, Tuple

from exceptions import CatalogError, ErrorKind

RESPONSE_BLOCKS = ("content", "error", "warning")


class ResponseParser(Protocol):
    output_format: str

    def parse(self, data: bytes) -> Tuple[Optional[Dict[str, Any]], Optional[CatalogError]]: ...


def _parse_error(fmt, message, raw=None):
    return CatalogError(
        kind=ErrorKind.PARSE,
        message=f"Error parsing downloaded '{fmt.upper()}' data: {message}",
        raw=raw,
        context=f"{fmt}.parse",
    )


def normalize_reviews(reviews):
    """The API nests reviews as {"review": [...]} or {"review": {...}}; flatten to a list"""
    if not reviews:
        return []
    if isinstance(reviews, dict):
        reviews = reviews.get("review") or []
    if isinstance(reviews, dict):
        reviews = [reviews]
    return [review for review in reviews if isinstance(review, dict)]


def normalize_content(content):
    content = dict(content)
    if "votes" in content:
        content["vote_count"] = content.pop("votes")
    content["reviews"] = normalize_reviews(content.get("reviews"))
    return content


class JSONResponseParser:
    output_format = "json"

    def parse(self, data):
        try:
            text = data.decode("utf-8") if isinstance(data, bytes) else data
            payload = json.loads(text)
        except (UnicodeDecodeError, ValueError) as e:
            return None, _parse_error(self.output_format, "invalid JSON", raw=str(e))

        if not isinstance(payload, dict):
            return None, _parse_error(self.output_format, "top-level value is not an object")

        result = {}
        for block in RESPONSE_BLOCKS:
            if block in payload:
                value = payload[block]
                if block == "content" and isinstance(value, dict):
                    value = normalize_content(value)
                result[block] = value
        if not result:
            return None, _parse_error(
                self.output_format, f"none of {', '.join(RESPONSE_BLOCKS)} found in response"
            )
        if "meta" in payload:
            result["meta"] = payload["meta"]
        return result, None


class XMLResponseParser:
    output_format = "xml"

    def parse(self, data):
        try:
            root = ET.fromstring(data)
        except (ET.ParseError, ValueError) as e:
            return None, _parse_error(self.output_format, "invalid XML", raw=str(e))

        if root.tag != "idgames-response":
            return None, _parse_error(self.output_format, f"unexpected root element <{root.tag}>")

        result = {"meta": {"version": root.get("version")}}
        for element in root:
            if element.tag not in RESPONSE_BLOCKS:
                continue
            block = {}
            for child in element:
                if child.tag == "reviews":
                    block["reviews"] = [
                        {field.tag: field.text for field in review}
                        for review in child.findall("review")
                    ]
                else:
                    block[child.tag] = child.text
            if element.tag == "content":
                block = normalize_content(block)
            result[element.tag] = block

        if len(result) == 1:
            return None, _parse_error(
                self.output_format, f"none of {', '.join(RESPONSE_BLOCKS)} found in response"
            )
        return result, None


def get_parser(output_format):
    if output_format == "json":
        return JSONResponseParser()
    if output_format == "xml":
        return XMLResponseParser()
    raise ValueError(f"Unknown output format: {output_format}")
