"""
Tests for XML wire codec
"""
from wxpay.services.sign_utils import UNIFIED_ORDER_FIELDS
from wxpay.services.xml_utils import (
    build_ack, contains_result_success, contains_return_success, decode_xml, encode_xml,
    extract_coupons, extract_field, is_return_success, parse_count,
)

ORDER = ("appid", "mch_id", "nonce_str", "out_trade_no", "total_fee")


class TestEncode:

    def test_plain_children_in_order_with_sign_last(self):
        fields = {"total_fee": "100", "appid": "wx1", "mch_id": "10001"}
        xml = encode_xml(fields, ORDER, sign="ABC")
        assert xml == "<xml><appid>wx1</appid><mch_id>10001</mch_id><total_fee>100</total_fee><sign>ABC</sign></xml>"

    def test_empty_fields_not_emitted(self):
        xml = encode_xml({"appid": "wx1", "attach": "", "detail": None}, UNIFIED_ORDER_FIELDS)
        assert "<attach>" not in xml
        assert "<detail>" not in xml
        assert xml == "<xml><appid>wx1</appid></xml>"

    def test_round_trip(self):
        fields = {"appid": "wx1", "mch_id": "10001", "nonce_str": "abc", "out_trade_no": "ORDER1", "total_fee": "100"}
        assert decode_xml(encode_xml(fields, ORDER), ORDER) == fields


class TestDecode:

    def test_cdata_value(self):
        assert extract_field("<xml><appid><![CDATA[wx1]]></appid></xml>", "appid") == "wx1"

    def test_bare_value(self):
        assert extract_field("<xml><total_fee>100</total_fee></xml>", "total_fee") == "100"

    def test_cdata_preferred_over_bare(self):
        xml = "<xml><total_fee>1</total_fee><total_fee><![CDATA[2]]></total_fee></xml>"
        assert extract_field(xml, "total_fee") == "2"

    def test_missing_field_is_empty(self):
        assert extract_field("<xml></xml>", "appid") == ""
        assert decode_xml("<xml></xml>", ("appid", "mch_id")) == {"appid": "", "mch_id": ""}

    def test_name_is_not_prefix_matched(self):
        xml = "<xml><coupon_fee_0>10</coupon_fee_0></xml>"
        assert extract_field(xml, "coupon_fee") == ""
        assert extract_field(xml, "coupon_fee_0") == "10"

    def test_parse_count(self):
        assert parse_count("2") == 2
        assert parse_count("0") == 0
        assert parse_count("") is None
        assert parse_count("-1") is None
        assert parse_count("x") is None

    def test_extract_coupons_grouped_by_index(self):
        xml = (
            "<xml><coupon_count>2</coupon_count>"
            "<coupon_type_1><![CDATA[CASH]]></coupon_type_1><coupon_id_1><![CDATA[c1]]></coupon_id_1>"
            "<coupon_fee_1>20</coupon_fee_1>"
            "<coupon_fee_0>10</coupon_fee_0><coupon_id_0><![CDATA[c0]]></coupon_id_0>"
            "<coupon_type_0><![CDATA[NO_CASH]]></coupon_type_0></xml>"
        )
        assert extract_coupons(xml, 2) == [
            ("coupon_fee_0", "10"), ("coupon_id_0", "c0"), ("coupon_type_0", "NO_CASH"),
            ("coupon_fee_1", "20"), ("coupon_id_1", "c1"), ("coupon_type_1", "CASH"),
        ]

    def test_extract_coupons_skips_missing(self):
        xml = "<xml><coupon_fee_0>10</coupon_fee_0></xml>"
        assert extract_coupons(xml, 1) == [("coupon_fee_0", "10")]

    def test_parse_count_rejects_non_ascii_digits(self):
        assert parse_count("²") is None
        assert parse_count("１２") is None

    def test_extract_coupons_huge_count_only_reads_present_indices(self):
        xml = "<xml><coupon_fee_0>10</coupon_fee_0><coupon_id_0><![CDATA[c0]]></coupon_id_0></xml>"
        assert extract_coupons(xml, 10 ** 9) == [("coupon_fee_0", "10"), ("coupon_id_0", "c0")]

    def test_extract_coupons_ignores_padded_and_out_of_range_indices(self):
        xml = "<xml><coupon_fee_01>10</coupon_fee_01><coupon_fee_2>20</coupon_fee_2><coupon_fee_1>5</coupon_fee_1></xml>"
        assert extract_coupons(xml, 2) == [("coupon_fee_1", "5")]


class TestSuccessChecks:

    def test_strict_prefix(self):
        ok = "<xml><return_code><![CDATA[SUCCESS]]></return_code><result_code><![CDATA[SUCCESS]]></result_code></xml>"
        assert is_return_success(ok)
        assert not is_return_success(" " + ok)
        assert not is_return_success("<xml><appid>1</appid><return_code><![CDATA[SUCCESS]]></return_code></xml>")

    def test_substring_markers(self):
        xml = "<xml><appid>1</appid><return_code><![CDATA[SUCCESS]]></return_code></xml>"
        assert contains_return_success(xml)
        assert not contains_result_success(xml)

    def test_ack(self):
        assert build_ack() == "<xml><return_code><![CDATA[SUCCESS]]></return_code><return_msg><![CDATA[OK]]></return_msg></xml>"
