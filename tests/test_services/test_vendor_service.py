import csv
import io

import pytest

from climate_seal.core.exceptions import ValidationError
from climate_seal.models import PurchaseGood, Vendor, VendorImportRecord, VendorPurchaseGood
from climate_seal.services.vendor_service import (
    EXPORT_HEADERS,
    IMPORT_FAILED,
    IMPORT_SUCCESS,
    create_vendor,
    import_vendors,
    parse_import_csv,
    validate_import_row,
    validate_purchase_good,
    validate_vendor,
    vendors_to_csv,
)

HEADER = "vendorName,contactPerson,phone,email,address,purchaseGoodCode,purchaseGoodName,remarks\n"


def _vendor(**overrides):
    payload = {"name": "华东钢铁", "contact_person": "王工", "phone": "+86-21-5555", "email": "sales@hd.cn"}
    payload.update(overrides)
    return payload


def test_valid_vendor_has_no_errors():
    assert validate_vendor(_vendor()) == []


def test_vendor_field_rules():
    errors = validate_vendor(_vendor(name="x" * 51, phone="12ab", email="nope", status="paused"))
    assert "供应商名称最多50个字符" in errors
    assert "联系电话格式不正确" in errors
    assert "邮箱格式不正确" in errors
    assert "状态必须为启用或禁用" in errors

    assert "联系人不能为空" in validate_vendor(_vendor(contact_person=" "))


def test_purchase_good_rules():
    assert validate_purchase_good({"code": "PG-1", "name": "热轧卷"}) == []
    assert validate_purchase_good({"code": "", "name": "热轧卷"}) == ["采购产品代码不能为空"]


def test_parse_import_csv_strips_bom_and_blank_rows():
    content = "\ufeff" + HEADER + "华东钢铁,王工,13800000000,a@b.cn,,PG-1,热轧卷,\n,,,,,,,\n"
    rows = parse_import_csv(content)
    assert len(rows) == 1
    assert rows[0]["vendorName"] == "华东钢铁"
    assert rows[0]["address"] == ""


def test_parse_import_csv_requires_columns():
    with pytest.raises(ValidationError, match="missing columns"):
        parse_import_csv("vendorName,phone\nA,1\n")
    with pytest.raises(ValidationError):
        parse_import_csv("")


def test_validate_import_row():
    row = {"vendorName": "A", "contactPerson": "", "phone": "1", "email": "bad", "purchaseGoodCode": "C", "purchaseGoodName": "N"}
    assert validate_import_row(row) == ["联系人不能为空", "邮箱格式不正确"]


def test_vendors_to_csv():
    text = vendors_to_csv(
        [
            {
                "name": "华东钢铁",
                "contactPerson": "王工",
                "phone": "13800000000",
                "email": "a@b.cn",
                "address": "上海",
                "remarks": "",
                "status": "启用",
                "updatedBy": "ops@example.com",
                "updatedAt": "2024-05-01",
                "purchaseGoods": [{"code": "PG-1", "name": "热轧卷"}, {"code": "PG-2", "name": "冷轧板"}],
            }
        ]
    )
    assert text.startswith("\ufeff")
    rows = list(csv.reader(io.StringIO(text[1:])))
    assert rows[0] == EXPORT_HEADERS
    assert rows[1][5] == "PG-1 热轧卷, PG-2 冷轧板"
    assert rows[1][8] == "ops@example.com"


def test_import_bad_row_does_not_undo_earlier_rows(db_session):
    content = HEADER + (
        "华东钢铁,王工,021-5555,sales@hd.cn,上海,PG-1,热轧卷,\n"
        "西南铝业,李工,abc,li@xn.cn,重庆,PG-2,铝锭,\n"
    )

    result = import_vendors(db_session, "vendors.csv", content, "ops@example.com")

    assert result["successCount"] == 1
    assert result["failureCount"] == 1
    assert result["status"] == IMPORT_FAILED
    assert result["results"][1]["row"] == 2
    assert "联系电话格式不正确" in result["results"][1]["errorMessage"]

    assert [v.name for v in db_session.query(Vendor).all()] == ["华东钢铁"]
    assert [g.code for g in db_session.query(PurchaseGood).all()] == ["PG-1"]
    assert db_session.query(VendorPurchaseGood).count() == 1

    record = db_session.query(VendorImportRecord).one()
    assert record.id == result["recordId"]
    assert record.status == IMPORT_FAILED
    assert [item["row"] for item in record.errors] == [2]


def test_import_reuses_existing_vendor_and_links_goods(db_session):
    existing = create_vendor(
        db_session,
        {"name": "华东钢铁", "contact_person": "王工", "phone": "021-5555", "email": "sales@hd.cn"},
        "ops@example.com",
    )
    content = HEADER + (
        "华东钢铁,王工,021-5555,sales@hd.cn,上海,PG-1,热轧卷,\n"
        "华东钢铁,王工,021-5555,sales@hd.cn,上海,PG-2,冷轧板,\n"
        "华东钢铁,王工,021-5555,sales@hd.cn,上海,PG-1,热轧卷,\n"
    )

    result = import_vendors(db_session, "vendors.csv", content, "ops@example.com")

    assert result["status"] == IMPORT_SUCCESS
    assert (result["successCount"], result["failureCount"]) == (3, 0)
    assert db_session.query(Vendor).count() == 1
    assert db_session.query(PurchaseGood).count() == 2
    links = db_session.query(VendorPurchaseGood).all()
    assert len(links) == 2
    assert {link.vendor_id for link in links} == {existing["id"]}


def test_import_with_only_invalid_rows_fails(db_session):
    content = HEADER + ",王工,021-5555,not-an-email,上海,PG-1,热轧卷,\n"

    result = import_vendors(db_session, "vendors.csv", content, "ops@example.com")

    assert result["status"] == IMPORT_FAILED
    assert (result["successCount"], result["failureCount"]) == (0, 1)
    assert db_session.query(Vendor).count() == 0
