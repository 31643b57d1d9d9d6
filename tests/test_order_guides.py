"""Tests for order guide processing and approval."""

import pytest

from foodcost.models import InventoryItem, LineMatchStatus, OrderGuide, OrderGuideLine, OrderGuideStatus, VendorItem
from foodcost.services.exceptions import OrderGuideError
from foodcost.services.order_guide_service import OrderGuideProcessor
from foodcost.services.records import VendorProduct


class TestOrderGuideProcessor:
    """Test the upload -> review -> approve workflow."""

    @pytest.fixture
    def processor(self, storage):
        return OrderGuideProcessor(storage)

    @pytest.fixture
    def catalog(self, make_item):
        return {
            "milk": make_item("Whole Milk", unit="ea", plu_sku="SYS-1"),
            "cream": make_item("Heavy Cream", unit="ea"),
        }

    @pytest.fixture
    def products(self):
        return [
            VendorProduct(vendor_sku="SYS-1", name="Whole Milk", category_code="DAIRY", unit="ea", case_size=4, price=14.0),
            VendorProduct(vendor_sku="SYS-2", name="Heavy Cream 36%", category_code="DAIRY", unit="ea", price=9.5),
            VendorProduct(vendor_sku="SYS-3", name="Paper Towels", unit="ea", case_size=12, price=24.0),
        ]

    def test_process_classifies_lines(self, processor, db_session, test_company, test_vendor, catalog, products):
        result = processor.process(test_company.id, test_vendor.id, products, file_name="sysco.csv")

        assert result.total_items == 3
        assert result.high_confidence_matches == 1
        assert result.low_confidence_matches + result.medium_confidence_matches == 1
        assert result.no_matches == 1
        assert result.ready_for_review is True

        guide = db_session.get(OrderGuide, result.order_guide_id)
        assert guide.status == OrderGuideStatus.PENDING_REVIEW
        assert guide.row_count == 3

        lines = {line.vendor_sku: line for line in guide.lines}
        assert lines["SYS-1"].match_status == LineMatchStatus.AUTO_MATCHED
        assert lines["SYS-1"].matched_inventory_item_id == catalog["milk"].id
        assert lines["SYS-1"].match_confidence == 85
        assert lines["SYS-2"].match_status == LineMatchStatus.NEEDS_REVIEW
        assert lines["SYS-2"].matched_inventory_item_id == catalog["cream"].id
        assert lines["SYS-3"].match_status == LineMatchStatus.NEW_ITEM
        assert 0 <= lines["SYS-3"].match_confidence <= 45

    def test_process_rejects_empty_guide(self, processor, test_company, test_vendor):
        with pytest.raises(OrderGuideError) as exc:
            processor.process(test_company.id, test_vendor.id, [])
        assert exc.value.not_found is False

    def test_process_rejects_other_company_vendor(self, processor, other_company, test_vendor, products):
        with pytest.raises(OrderGuideError) as exc:
            processor.process(other_company.id, test_vendor.id, products)
        assert exc.value.not_found is True

    def test_approve_links_and_creates_items(self, processor, db_session, test_company, test_vendor, catalog,
                                             products, units):
        upload = processor.process(test_company.id, test_vendor.id, products)

        result = processor.approve(
            upload.order_guide_id, test_company.id, approved_by="manager@example.com", create_new_inventory_items=True
        )

        assert result.vendor_items_created == 3
        assert result.inventory_items_created == 1

        vendor_items = {vi.vendor_sku: vi for vi in db_session.query(VendorItem).all()}
        assert vendor_items["SYS-1"].inventory_item_id == catalog["milk"].id
        assert vendor_items["SYS-1"].case_size == 4
        assert vendor_items["SYS-2"].inventory_item_id == catalog["cream"].id

        towels = db_session.query(InventoryItem).filter(InventoryItem.name == "Paper Towels").one()
        assert towels.unit_id == units["ea"].id
        assert towels.price_per_unit == pytest.approx(2.0)
        assert towels.yield_percent == 95.0
        assert vendor_items["SYS-3"].inventory_item_id == towels.id

        guide = db_session.get(OrderGuide, upload.order_guide_id)
        assert guide.status == OrderGuideStatus.APPROVED
        assert guide.approved_by == "manager@example.com"
        assert guide.approved_at is not None

    def test_approve_without_creating_new_items(self, processor, db_session, test_company, test_vendor, catalog,
                                                products):
        upload = processor.process(test_company.id, test_vendor.id, products)

        result = processor.approve(upload.order_guide_id, test_company.id)

        assert result.vendor_items_created == 2
        assert result.inventory_items_created == 0
        assert db_session.query(InventoryItem).count() == 2

    def test_approve_skips_existing_vendor_skus(self, processor, db_session, test_company, test_vendor, catalog,
                                                products):
        db_session.add(VendorItem(
            vendor_id=test_vendor.id,
            inventory_item_id=catalog["milk"].id,
            vendor_sku="SYS-1",
            purchase_unit_id=catalog["milk"].unit_id,
        ))
        db_session.commit()
        upload = processor.process(test_company.id, test_vendor.id, products)

        result = processor.approve(upload.order_guide_id, test_company.id)

        assert result.vendor_items_created == 1
        assert result.lines_skipped == 1
        assert db_session.query(VendorItem).filter(VendorItem.vendor_sku == "SYS-1").count() == 1

    def test_approve_twice_rejected(self, processor, test_company, test_vendor, catalog, products):
        upload = processor.process(test_company.id, test_vendor.id, products)
        processor.approve(upload.order_guide_id, test_company.id)

        with pytest.raises(OrderGuideError, match="already been processed"):
            processor.approve(upload.order_guide_id, test_company.id)

    def test_approve_other_company_guide_not_found(self, processor, test_company, other_company, test_vendor,
                                                   catalog, products):
        upload = processor.process(test_company.id, test_vendor.id, products)

        with pytest.raises(OrderGuideError) as exc:
            processor.approve(upload.order_guide_id, other_company.id)
        assert exc.value.not_found is True

    def test_unknown_unit_leaves_new_line_unlinked(self, processor, db_session, test_company, test_vendor, units):
        upload = processor.process(
            test_company.id, test_vendor.id, [VendorProduct(vendor_sku="X-1", name="Mystery Box", unit="crate")]
        )

        result = processor.approve(upload.order_guide_id, test_company.id, create_new_inventory_items=True)

        assert result.inventory_items_created == 0
        assert result.lines_skipped == 1
        assert db_session.get(OrderGuide, upload.order_guide_id).status == OrderGuideStatus.APPROVED

    def test_approval_is_atomic(self, processor, storage, db_session, monkeypatch, test_company, test_vendor,
                                catalog, products):
        upload = processor.process(test_company.id, test_vendor.id, products)
        real_create = storage.create_vendor_item
        calls = []

        def failing_create(vendor_item):
            calls.append(vendor_item.vendor_sku)
            if vendor_item.vendor_sku == "SYS-3":
                raise RuntimeError("constraint violated")
            return real_create(vendor_item)

        monkeypatch.setattr(storage, "create_vendor_item", failing_create)

        with pytest.raises(RuntimeError):
            processor.approve(upload.order_guide_id, test_company.id, create_new_inventory_items=True)

        assert calls == ["SYS-1", "SYS-2", "SYS-3"]
        assert db_session.query(VendorItem).count() == 0
        assert db_session.query(InventoryItem).filter(InventoryItem.name == "Paper Towels").count() == 0
        assert db_session.get(OrderGuide, upload.order_guide_id).status == OrderGuideStatus.PENDING_REVIEW
        assert db_session.query(OrderGuideLine).count() == 3

    def test_rows_sharing_a_sku_keep_their_own_match(self, processor, db_session, test_company, test_vendor,
                                                     make_item):
        milk = make_item("Whole Milk", unit="ea")
        make_item("Paper Towels", unit="ea")
        products = [
            VendorProduct(vendor_sku="DUP", name="Whole Milk", unit="ea"),
            VendorProduct(vendor_sku="DUP", name="Zzqx Widget", unit="ea"),
        ]

        result = processor.process(test_company.id, test_vendor.id, products)

        assert result.low_confidence_matches + result.medium_confidence_matches == 1
        assert result.no_matches == 1
        lines = {line.product_name: line for line in db_session.get(OrderGuide, result.order_guide_id).lines}
        assert lines["Whole Milk"].match_status == LineMatchStatus.NEEDS_REVIEW
        assert lines["Whole Milk"].matched_inventory_item_id == milk.id
        assert lines["Zzqx Widget"].match_status == LineMatchStatus.NEW_ITEM

        approval = processor.approve(result.order_guide_id, test_company.id, create_new_inventory_items=True)

        assert approval.vendor_items_created == 1
        assert approval.lines_skipped == 1
        assert db_session.query(VendorItem).one().inventory_item_id == milk.id
