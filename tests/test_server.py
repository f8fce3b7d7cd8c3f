"""Tests for the MCP server wiring and the command line."""

import json

import httpx
import mcp.types as types
from typer.testing import CliRunner

from specky.__main__ import app
from specky.dispatch import ToolResult, create_dispatcher
from specky.server import build_server, to_call_tool_result


def _call_request(name, arguments):
    return types.CallToolRequest(
        method="tools/call",
        params=types.CallToolRequestParams(name=name, arguments=arguments),
    )


class TestToCallToolResult:
    def test_success(self):
        result = to_call_tool_result(ToolResult.ok("hello"))
        assert result.isError is False
        assert result.content[0].text == "hello"

    def test_error(self):
        result = to_call_tool_result(ToolResult.error("boom"))
        assert result.isError is True
        assert result.content[0].text == "Error: boom"


class TestBuildServer:
    async def test_full_mode_lists_every_tool(self, make_context, petstore_v2):
        context = await make_context(petstore_v2)
        server = build_server(create_dispatcher(context, "full"), "specky-test", "1.0.0")

        response = await server.request_handlers[types.ListToolsRequest](
            types.ListToolsRequest(method="tools/list")
        )
        names = [tool.name for tool in response.root.tools]
        assert len(names) == 8
        assert "get_pet_by_id" in names

    async def test_search_mode_lists_meta_tools(self, make_context, petstore_v2):
        context = await make_context(petstore_v2)
        server = build_server(create_dispatcher(context, "search"), "specky-test", "1.0.0")

        response = await server.request_handlers[types.ListToolsRequest](
            types.ListToolsRequest(method="tools/list")
        )
        assert [tool.name for tool in response.root.tools] == ["search_endpoints", "call_endpoint"]

    async def test_call_tool_round_trip(self, make_context, recorder, petstore_v2):
        context = await make_context(petstore_v2)
        server = build_server(create_dispatcher(context, "full"), "specky-test", "1.0.0")
        recorder.response = httpx.Response(200, json={"id": 7})

        response = await server.request_handlers[types.CallToolRequest](
            _call_request("get_pet_by_id", {"petId": 7})
        )
        result = response.root
        assert result.isError is False
        assert json.loads(result.content[0].text) == {"id": 7}
        assert str(recorder.last.url) == "https://petstore.swagger.io/v2/pet/7"

    async def test_call_unknown_tool_is_error_result(self, make_context, petstore_v2):
        context = await make_context(petstore_v2)
        server = build_server(create_dispatcher(context, "search"), "specky-test", "1.0.0")

        response = await server.request_handlers[types.CallToolRequest](
            _call_request("nope", {})
        )
        assert response.root.isError is True
        assert "Unknown tool: nope" in response.root.content[0].text


class TestCli:
    def test_list_prints_tools_table(self, tmp_path, petstore_v2):
        path = tmp_path / "petstore.json"
        path.write_text(json.dumps(petstore_v2))

        result = CliRunner().invoke(app, [str(path), "--list", "--no-banner", "--mode", "full"])
        assert result.exit_code == 0
        assert "API Spec: Swagger Petstore v1.0.7" in result.stdout
        assert "Mode: full (8 tools exposed directly)" in result.stdout
        assert "/pet/{petId}" in result.stdout

    def test_list_with_tag_filter(self, tmp_path, petstore_v2):
        path = tmp_path / "petstore.json"
        path.write_text(json.dumps(petstore_v2))

        result = CliRunner().invoke(app, [str(path), "--list", "--tags", "store"])
        assert result.exit_code == 0
        assert "1 tools generated" in result.stdout
        assert "/store/inventory" in result.stdout
        assert "/pet/{petId}" not in result.stdout

    def test_missing_spec_exits_nonzero(self, tmp_path):
        result = CliRunner().invoke(app, [str(tmp_path / "absent.json"), "--list"])
        assert result.exit_code == 1

    def test_unknown_auth_exits_nonzero(self, tmp_path, petstore_v2):
        path = tmp_path / "petstore.json"
        path.write_text(json.dumps(petstore_v2))

        result = CliRunner().invoke(app, [str(path), "--list", "--auth", "kerberos"])
        assert result.exit_code == 1
