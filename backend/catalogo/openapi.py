"""Minimal deterministic OpenAPI document for the catalog ordering API.

Scope (purposefully narrow): one entry per route with its parameters, the main
response schema and the documented error statuses. Served at /openapi.json.
"""
from typing import Any, Dict, List, Optional

__all__ = ["build_openapi_spec"]

_JSON = "application/json"


def caching_headers() -> Dict[str, Any]:
    return {
        "ETag": {"schema": {"type": "string"}},
        "Last-Modified": {"schema": {"type": "string"}},
        "X-Last-Modified-ISO": {"schema": {"type": "string"}},
    }


def _ref(name: str) -> Dict[str, str]:
    return {"$ref": f"#/components/schemas/{name}"}


def _array_of(name: str) -> Dict[str, Any]:
    return {"type": "array", "items": _ref(name)}


def _schemas() -> Dict[str, Any]:
    product = {
        "type": "object",
        "properties": {
            "pagina": {"type": "integer", "minimum": 1},
            "nome": {"type": "string"},
            "ref": {"type": "string"},
            "qtd_multiplo": {"type": "integer", "minimum": 1},
            "preco": {"type": "number", "minimum": 0},
        },
        "required": ["pagina", "nome", "ref", "qtd_multiplo", "preco"],
    }
    line = {
        "type": "object",
        "properties": {
            "ref": {"type": "string"},
            "nome": {"type": "string"},
            "pagina": {"type": "integer", "nullable": True},
            "qtd": {"type": "integer", "minimum": 0},
            "qtd_multiplo": {"type": "integer", "minimum": 1},
            "preco": {"type": "number"},
        },
        "required": ["ref", "qtd"],
    }
    order = {
        "type": "object",
        "properties": {
            "id": {"type": "string"},
            "catalogo_id": {"type": "integer"},
            "cliente_nome": {"type": "string", "nullable": True},
            "cliente_contato": {"type": "string", "nullable": True},
            "observacao": {"type": "string", "nullable": True},
            "status": {"type": "string", "default": "aberto"},
            "created_at": {"type": "string", "format": "date-time"},
            "updated_at": {"type": "string", "format": "date-time"},
        },
        "required": ["id", "catalogo_id", "status"],
    }
    catalog = {
        "type": "object",
        "properties": {
            "id": {"type": "integer"},
            "nome": {"type": "string"},
            "ano": {"type": "integer", "nullable": True},
            "pdf_url": {"type": "string"},
            "empresa_nome": {"type": "string", "nullable": True},
            "whatsapp_phone": {"type": "string", "nullable": True},
            "politica": {"type": "string", "nullable": True},
            "created_at": {"type": "string", "format": "date-time"},
        },
        "required": ["id", "nome", "pdf_url"],
    }
    error = {
        "type": "object",
        "properties": {
            "error": {
                "type": "object",
                "properties": {
                    "status": {"type": "integer"},
                    "title": {"type": "string"},
                    "detail": {"type": "string"},
                },
            }
        },
    }
    return {
        "Catalog": catalog,
        "Product": product,
        "Order": order,
        "OrderLine": line,
        "OrderWithItems": {"allOf": [_ref("Order"), {"type": "object", "properties": {"itens": _array_of("OrderLine")}}]},
        "OrderLink": {
            "type": "object",
            "properties": {"pedido_id": {"type": "string"}, "catalogo_id": {"type": "integer"}, "itens": _array_of("OrderLine")},
        },
        "Ok": {"type": "object", "properties": {"ok": {"type": "boolean"}}},
        "Error": error,
    }


def _op(summary: str, schema: Optional[Dict[str, Any]], errors: List[str], params: Optional[List[Dict[str, Any]]] = None,
        body: Optional[Dict[str, Any]] = None, status: str = "200", cached: bool = False, operator: bool = False) -> Dict[str, Any]:
    ok: Dict[str, Any] = {"description": "OK"}
    if schema is not None:
        ok["content"] = {_JSON: {"schema": schema}}
    if cached:
        ok["headers"] = caching_headers()
    responses: Dict[str, Any] = {status: ok}
    if cached:
        responses["304"] = {"description": "Not Modified"}
    for code in errors:
        responses[code] = {"description": "Error", "content": {_JSON: {"schema": _ref("Error")}}}
    op: Dict[str, Any] = {"summary": summary, "responses": responses}
    if params:
        op["parameters"] = params
    if body is not None:
        op["requestBody"] = {"required": True, "content": {_JSON: {"schema": body}}}
    if operator:
        op["security"] = [{"bearerAuth": []}]
    return op


def _path_param(name: str, typ: str = "integer") -> Dict[str, Any]:
    return {"name": name, "in": "path", "required": True, "schema": {"type": typ}}


def _query_param(name: str, typ: str = "string", required: bool = False) -> Dict[str, Any]:
    return {"name": name, "in": "query", "required": required, "schema": {"type": typ}}


def build_openapi_spec() -> Dict[str, Any]:
    cat_id = _path_param("catalog_id")
    order_id = _path_param("order_id", "string")
    free_object = {"type": "object"}
    paths: Dict[str, Any] = {
        "/healthz": {"get": _op("Liveness probe", free_object, [])},
        "/auth/login": {"post": _op("Operator login", free_object, ["401"],
                                    body={"type": "object", "properties": {"password": {"type": "string"}}})},
        "/catalogos": {
            "get": _op("List catalogs", free_object, ["400"], cached=True,
                       params=[_query_param("limit", "integer"), _query_param("offset", "integer"), _query_param("sort"), _query_param("nome")]),
            "post": _op("Create catalog", _ref("Catalog"), ["400", "401"], body=_ref("Catalog"), status="201", operator=True),
        },
        "/catalogos/{catalog_id}": {
            "get": _op("Get catalog", _ref("Catalog"), ["404"], params=[cat_id], cached=True),
            "patch": _op("Patch catalog", _ref("Catalog"), ["400", "401", "404"], params=[cat_id], body=free_object, operator=True),
        },
        "/catalogos/{catalog_id}/importar": {
            "post": _op("Import products (CSV upload or JSON rows)", free_object, ["400", "401", "404", "500"],
                        params=[cat_id, _query_param("mode")], operator=True),
        },
        "/catalogos/{catalog_id}/produtos": {
            "get": _op("Products on a PDF page", _array_of("Product"), ["400"], cached=True,
                       params=[cat_id, _query_param("page", "integer", required=True)]),
        },
        "/catalogos/{catalog_id}/busca": {
            "get": _op("Search products by ref or name", _array_of("Product"), [],
                       params=[cat_id, _query_param("q"), _query_param("limit", "integer")]),
        },
        "/pedidos": {"post": _op("Create order", _ref("Order"), ["400"], body=free_object, status="201")},
        "/pedidos/{order_id}": {
            "get": _op("Get order with items", _ref("OrderWithItems"), ["404"], params=[order_id]),
            "patch": _op("Patch order header", _ref("Order"), ["400", "404"], params=[order_id], body=free_object),
        },
        "/pedidos/{order_id}/itens": {
            "put": _op("Replace order items (cart sync)", _ref("Ok"), ["400", "404"], params=[order_id],
                       body={"type": "object", "properties": {"itens": _array_of("OrderLine")}}),
        },
        "/pedidos/{order_id}/itens/add": {
            "post": _op("Add quantity delta to one item (missing or zero delta counts as 1)", _ref("OrderLine"), ["400", "404"], params=[order_id], body=free_object),
        },
        "/pedidos/{order_id}/itens/remove": {
            "post": _op("Remove one item", _ref("Ok"), ["400"], params=[order_id], body=free_object),
        },
        "/p/{order_id}": {"get": _op("Resolve a shared order link", _ref("OrderLink"), ["404"], params=[order_id])},
    }
    return {
        "openapi": "3.0.3",
        "info": {"title": "Catalogo B2B API", "version": "1.0.0"},
        "paths": paths,
        "components": {
            "schemas": _schemas(),
            "securitySchemes": {"bearerAuth": {"type": "http", "scheme": "bearer", "bearerFormat": "JWT"}},
        },
    }
