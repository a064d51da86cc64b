"""Tests for the XML-RPC codec."""

import pytest
from rpcwire.codecs import (
    DecodeError,
    XmlRpcCodec,
    XmlRpcRequestDecodingError,
    XmlRpcRequestEncodingError,
    XmlRpcResponseDecodingError,
    XmlRpcResponseEncodingError,
)
from rpcwire.codecs.xml_codec import decode_value, encode_value


@pytest.fixture
def codec():
    return XmlRpcCodec()


def _call(params_xml: str, method: str = "test.method") -> bytes:
    return (
        '<?xml version="1.0"?>\n'
        f"<methodCall><methodName>{method}</methodName><params>{params_xml}</params></methodCall>"
    ).encode()


# ── Encoding ─────────────────────────────────────────────────────────


class TestRequestEncoding:
    def test_simple_call(self, codec):
        xml = codec.encode_request({"method": "examples.getStateName", "params": [41]}).decode()
        assert xml.startswith("<?xml")
        assert "<methodCall>" in xml
        assert "<methodName>examples.getStateName</methodName>" in xml
        assert "<param>" in xml
        assert "<i4>41</i4>" in xml

    def test_scalar_types(self, codec):
        xml = codec.encode_request({"method": "t", "params": [True, False, 3.14159, "hi", None]}).decode()
        assert "<boolean>1</boolean>" in xml
        assert "<boolean>0</boolean>" in xml
        assert "<double>3.14159</double>" in xml
        assert "<string>hi</string>" in xml
        assert "<string></string>" in xml

    def test_large_integer_uses_i8(self, codec):
        xml = codec.encode_request({"method": "t", "params": [2**40]}).decode()
        assert f"<i8>{2**40}</i8>" in xml

    def test_struct_and_array(self, codec):
        xml = codec.encode_request(
            {"method": "user.create", "params": [{"name": "Alice", "tags": [1, 2]}]}
        ).decode()
        assert "<struct>" in xml
        assert "<name>name</name>" in xml
        assert "<string>Alice</string>" in xml
        assert "<array>" in xml
        assert "<data>" in xml

    def test_struct_member_order(self, codec):
        xml = codec.encode_request({"method": "t", "params": [{"b": 1, "a": 2, "c": 3}]}).decode()
        assert xml.index("<name>b</name>") < xml.index("<name>a</name>") < xml.index("<name>c</name>")

    def test_escaping(self, codec):
        xml = codec.encode_request({"method": "test.echo", "params": ["<tag>value & more</tag>"]}).decode()
        assert "<tag>value & more</tag>" not in xml
        assert "&lt;tag&gt;value &amp; more&lt;/tag&gt;" in xml

    def test_named_params_become_one_struct(self, codec):
        body = codec.encode_request({"method": "subtract", "params": {"minuend": 42, "subtrahend": 23}})
        assert codec.decode_request(body)["params"] == [{"minuend": 42, "subtrahend": 23}]

    def test_without_params(self, codec):
        xml = codec.encode_request({"method": "system.listMethods"}).decode()
        assert "<params>" not in xml


class TestResponseEncoding:
    def test_success(self, codec):
        xml = codec.encode_response({"jsonrpc": "2.0", "id": 1, "result": "South Dakota"}).decode()
        assert "<methodResponse>" in xml
        assert "<string>South Dakota</string>" in xml
        assert "<fault>" not in xml

    def test_fault(self, codec):
        xml = codec.encode_response(
            {"jsonrpc": "2.0", "id": 1, "error": {"code": 4, "message": "Too many parameters."}}
        ).decode()
        assert "<fault>" in xml
        assert "<name>faultCode</name>" in xml
        assert "<i4>4</i4>" in xml
        assert "<name>faultString</name>" in xml
        assert "<string>Too many parameters.</string>" in xml
        assert "<params>" not in xml

    def test_fault_defaults(self, codec):
        body = codec.encode_response({"error": {}})
        assert codec.decode_response(body)["error"] == {"code": -32603, "message": "Internal error"}

    def test_batch_cannot_be_encoded(self, codec):
        with pytest.raises(XmlRpcResponseEncodingError) as exc_info:
            codec.encode_response([{"result": 1}])
        assert isinstance(exc_info.value.__cause__, TypeError)

    def test_response_without_result_or_error(self, codec):
        with pytest.raises(XmlRpcResponseEncodingError) as exc_info:
            codec.encode_response({"status": "ok"})
        assert isinstance(exc_info.value.__cause__, ValueError)

    @pytest.mark.parametrize(
        "result",
        ["bad\x01char", {"key\x0b": 1}, ["\ufffe"]],
    )
    def test_characters_xml_cannot_carry(self, codec, result):
        with pytest.raises(XmlRpcResponseEncodingError):
            codec.encode_response({"result": result})

    def test_method_name_characters(self, codec):
        with pytest.raises(XmlRpcRequestEncodingError):
            codec.encode_request({"method": "bad\x00name", "params": []})

    def test_carriage_return_is_a_character_reference(self, codec):
        body = codec.encode_response({"result": "a\r\nb"})
        assert b"a&#13;\nb" in body
        assert b"\r" not in body


# ── Decoding ─────────────────────────────────────────────────────────


class TestRequestDecoding:
    def test_simple_call(self, codec):
        result = codec.decode_request(_call("<param><value><i4>41</i4></value></param>", "examples.getStateName"))
        assert result == {"jsonrpc": "2.0", "method": "examples.getStateName", "params": [41], "id": None}

    def test_multiple_params(self, codec):
        result = codec.decode_request(
            _call("<param><value><i4>2</i4></value></param><param><value><int>3</int></value></param>")
        )
        assert result["params"] == [2, 3]

    def test_pretty_printed_document(self, codec):
        xml = b"""<?xml version="1.0"?>
<methodCall>
  <methodName>user.create</methodName>
  <params>
    <param>
      <value>
        <struct>
          <member>
            <name>name</name>
            <value><string>Alice</string></value>
          </member>
          <member>
            <name>age</name>
            <value><i4>30</i4></value>
          </member>
        </struct>
      </value>
    </param>
  </params>
</methodCall>"""
        result = codec.decode_request(xml)
        assert result["method"] == "user.create"
        assert result["params"] == [{"name": "Alice", "age": 30}]

    @pytest.mark.parametrize(
        "value_xml, expected",
        [
            ("<boolean>1</boolean>", True),
            ("<boolean>0</boolean>", False),
            ("<double>2.5</double>", 2.5),
            ("<string>text</string>", "text"),
            ("<string></string>", ""),
            ("<string>  padded  </string>", "  padded  "),
            ("untyped", "untyped"),
            ("<nil/>", None),
            ("<i8>1099511627776</i8>", 2**40),
        ],
    )
    def test_scalar_types(self, codec, value_xml, expected):
        result = codec.decode_request(_call(f"<param><value>{value_xml}</value></param>"))
        assert result["params"] == [expected]

    def test_no_params(self, codec):
        xml = b"<methodCall><methodName>system.listMethods</methodName></methodCall>"
        assert codec.decode_request(xml)["params"] == []

    def test_empty_params(self, codec):
        xml = b"<methodCall><methodName>ping</methodName><params>\n</params></methodCall>"
        assert codec.decode_request(xml)["params"] == []

    @pytest.mark.parametrize(
        "payload",
        [
            b"<methodCall><methodName>x</methodName>",
            b"not xml at all",
            b"<methodResponse><params/></methodResponse>",
            _call("<param><value><i4>abc</i4></value></param>"),
            _call("<param><value><unknown>1</unknown></value></param>"),
        ],
    )
    def test_malformed(self, codec, payload):
        with pytest.raises(XmlRpcRequestDecodingError) as exc_info:
            codec.decode_request(payload)
        assert isinstance(exc_info.value, DecodeError)
        assert exc_info.value.__cause__ is not None


class TestSingletonCollections:
    """One repeated element must still decode as a collection."""

    def test_single_param(self, codec):
        result = codec.decode_request(_call("<param><value><double>1.5</double></value></param>"))
        assert result["params"] == [1.5]

    def test_single_param_holding_struct(self, codec):
        result = codec.decode_request(
            _call(
                "<param><value><struct><member><name>k</name><value><i4>1</i4></value></member>"
                "</struct></value></param>"
            )
        )
        assert result["params"] == [{"k": 1}]

    @pytest.mark.parametrize(
        "item_xml, expected",
        [
            ("<i4>7</i4>", [7]),
            ("<double>7.5</double>", [7.5]),
            ("<string>only</string>", ["only"]),
            ("<boolean>1</boolean>", [True]),
            ("plain", ["plain"]),
            ("<struct><member><name>a</name><value><i4>1</i4></value></member></struct>", [{"a": 1}]),
            ("<array><data><value><i4>1</i4></value></data></array>", [[1]]),
        ],
    )
    def test_single_array_element(self, codec, item_xml, expected):
        result = codec.decode_request(
            _call(f"<param><value><array><data><value>{item_xml}</value></data></array></value></param>")
        )
        assert result["params"] == [expected]

    def test_single_struct_member(self, codec):
        result = codec.decode_request(
            _call(
                "<param><value><struct><member><name>only</name>"
                "<value><array><data><value><i4>1</i4></value></data></array></value>"
                "</member></struct></value></param>"
            )
        )
        assert result["params"] == [{"only": [1]}]

    def test_empty_array_and_struct(self, codec):
        result = codec.decode_request(
            _call(
                "<param><value><array><data></data></array></value></param>"
                "<param><value><struct></struct></value></param>"
            )
        )
        assert result["params"] == [[], {}]

    def test_encoded_singletons_round_trip(self, codec):
        request = {"jsonrpc": "2.0", "method": "t", "params": [[1], {"a": [{"b": 2}]}], "id": None}
        assert codec.decode_request(codec.encode_request(request)) == request


class TestResponseDecoding:
    def test_success(self, codec):
        xml = (
            b"<methodResponse><params><param><value><string>South Dakota</string></value>"
            b"</param></params></methodResponse>"
        )
        assert codec.decode_response(xml) == {"jsonrpc": "2.0", "result": "South Dakota", "id": None}

    def test_fault(self, codec):
        xml = b"""<methodResponse><fault><value><struct>
            <member><name>faultCode</name><value><int>4</int></value></member>
            <member><name>faultString</name><value><string>Too many parameters.</string></value></member>
        </struct></value></fault></methodResponse>"""
        assert codec.decode_response(xml) == {
            "jsonrpc": "2.0",
            "error": {"code": 4, "message": "Too many parameters."},
            "id": None,
        }

    def test_fault_must_be_struct(self, codec):
        xml = b"<methodResponse><fault><value><i4>1</i4></value></fault></methodResponse>"
        with pytest.raises(XmlRpcResponseDecodingError):
            codec.decode_response(xml)

    def test_wrong_root(self, codec):
        with pytest.raises(XmlRpcResponseDecodingError):
            codec.decode_response(_call("<param><value><i4>1</i4></value></param>"))


class TestRoundTrip:
    def test_request(self, codec):
        request = {
            "jsonrpc": "2.0",
            "method": "user.update",
            "params": [
                1,
                -7,
                2**40,
                "héllo ✓",
                "",
                True,
                False,
                0.25,
                [],
                {},
                [1, "two", [3.0]],
                "a\r\nb",
                "x\ry",
                "tab\there",
                {"name": "Alice", "roles": ["admin"], "meta": {"active": True}},
            ],
            "id": None,
        }
        assert codec.decode_request(codec.encode_request(request)) == request

    def test_response(self, codec):
        response = {"jsonrpc": "2.0", "result": {"total": 3, "items": [{"id": 1}]}, "id": None}
        assert codec.decode_response(codec.encode_response(response)) == response

    def test_fault(self, codec):
        response = {"jsonrpc": "2.0", "error": {"code": -32601, "message": "Method not found"}, "id": None}
        assert codec.decode_response(codec.encode_response(response)) == response

    def test_compact_output(self):
        codec = XmlRpcCodec(pretty=False)
        body = codec.encode_request({"method": "t", "params": [[1], {"a": "b"}]})
        assert b"\n" not in body.split(b"?>", 1)[1].strip()
        assert codec.decode_request(body)["params"] == [[1], {"a": "b"}]


class TestValueGrammar:
    def test_null_becomes_empty_string(self):
        assert encode_value(None) == {"string": ""}
        assert decode_value(None) == ""

    def test_unknown_object_becomes_empty_string(self):
        assert encode_value(object()) == {"string": ""}

    def test_boolean_literal_one(self):
        assert decode_value({"boolean": "1"}) is True
        assert decode_value({"boolean": "true"}) is False
