from __future__ import annotations

from stock_monitor.contracts.models import AlertKind, ProductSnapshot
from stock_monitor.differ.differ import ChangeDetector


def _make_snapshot(
    link: str = "https://www.firstcry.com/hot-wheels/bone-shaker/123",
    name: str = "Hot Wheels Bone Shaker",
    in_stock: bool = True,
    image: str = "https://cdn.fcglcdn.com/brainbees/images/products/123.jpg",
) -> ProductSnapshot:
    return ProductSnapshot(id=link, name=name, in_stock=in_stock, link=link, image=image)


def _snapshot(*products: ProductSnapshot) -> dict[str, ProductSnapshot]:
    return {p.id: p for p in products}


class TestNewProductDetection:
    """Tests for products that were never seen before."""

    def test_new_in_stock_product(self) -> None:
        detector = ChangeDetector()
        previous: dict[str, ProductSnapshot] = {}
        current = _snapshot(_make_snapshot())

        intents = detector.detect(previous, current, first_run=False)

        assert len(intents) == 1
        assert intents[0].kind == AlertKind.NEW
        assert intents[0].product.name == "Hot Wheels Bone Shaker"

    def test_new_out_of_stock_product_is_silent(self) -> None:
        detector = ChangeDetector()
        previous: dict[str, ProductSnapshot] = {}
        current = _snapshot(_make_snapshot(in_stock=False))

        intents = detector.detect(previous, current, first_run=False)

        assert intents == []
        assert previous == current

    def test_first_run_emits_nothing(self) -> None:
        detector = ChangeDetector()
        previous: dict[str, ProductSnapshot] = {}
        current = _snapshot(
            _make_snapshot(link="https://fc.com/a"),
            _make_snapshot(link="https://fc.com/b", in_stock=False),
        )

        intents = detector.detect(previous, current, first_run=True)

        assert intents == []
        assert set(previous) == {"https://fc.com/a", "https://fc.com/b"}

    def test_new_product_among_existing(self) -> None:
        detector = ChangeDetector()
        existing = _make_snapshot(link="https://fc.com/existing", name="Existing")
        previous = _snapshot(existing)
        current = _snapshot(existing, _make_snapshot(link="https://fc.com/new", name="Brand New"))

        intents = detector.detect(previous, current, first_run=False)

        assert len(intents) == 1
        assert intents[0].kind == AlertKind.NEW
        assert intents[0].product.name == "Brand New"


class TestRestockDetection:
    """Tests for out-of-stock to in-stock transitions."""

    def test_restock(self) -> None:
        detector = ChangeDetector()
        previous = _snapshot(_make_snapshot(in_stock=False))
        current = _snapshot(_make_snapshot(in_stock=True))

        intents = detector.detect(previous, current, first_run=False)

        assert len(intents) == 1
        assert intents[0].kind == AlertKind.STOCK

    def test_restock_reported_even_on_first_run_flag(self) -> None:
        """The first-run flag only suppresses never-seen products."""
        detector = ChangeDetector()
        previous = _snapshot(_make_snapshot(in_stock=False))
        current = _snapshot(_make_snapshot(in_stock=True))

        intents = detector.detect(previous, current, first_run=True)

        assert [i.kind for i in intents] == [AlertKind.STOCK]

    def test_still_in_stock_is_silent(self) -> None:
        detector = ChangeDetector()
        previous = _snapshot(_make_snapshot(in_stock=True))
        current = _snapshot(_make_snapshot(in_stock=True))

        assert detector.detect(previous, current, first_run=False) == []

    def test_going_out_of_stock_is_silent_but_recorded(self) -> None:
        detector = ChangeDetector()
        previous = _snapshot(_make_snapshot(in_stock=True))
        current = _snapshot(_make_snapshot(in_stock=False))

        intents = detector.detect(previous, current, first_run=False)

        assert intents == []
        assert previous[_make_snapshot().id].in_stock is False

    def test_flip_flop_alerts_again(self) -> None:
        detector = ChangeDetector()
        previous: dict[str, ProductSnapshot] = {}

        detector.detect(previous, _snapshot(_make_snapshot(in_stock=False)), first_run=True)
        first = detector.detect(previous, _snapshot(_make_snapshot(in_stock=True)), first_run=False)
        detector.detect(previous, _snapshot(_make_snapshot(in_stock=False)), first_run=False)
        second = detector.detect(previous, _snapshot(_make_snapshot(in_stock=True)), first_run=False)

        assert [i.kind for i in first] == [AlertKind.STOCK]
        assert [i.kind for i in second] == [AlertKind.STOCK]


class TestSeenTableMaintenance:
    """Tests for how the seen-products table is updated."""

    def test_entries_are_replaced_not_merged(self) -> None:
        detector = ChangeDetector()
        previous = _snapshot(_make_snapshot(name="Old Name", image="old.jpg"))
        new = _make_snapshot(name="New Name", image="")

        detector.detect(previous, _snapshot(new), first_run=False)

        assert previous[new.id] is new

    def test_delisted_product_left_untouched(self) -> None:
        detector = ChangeDetector()
        gone = _make_snapshot(link="https://fc.com/gone", in_stock=False)
        previous = _snapshot(gone)

        intents = detector.detect(previous, {}, first_run=False)

        assert intents == []
        assert previous == {gone.id: gone}

    def test_delisted_then_relisted_in_stock_is_restock(self) -> None:
        detector = ChangeDetector()
        product = _make_snapshot(in_stock=False)
        previous = _snapshot(product)

        detector.detect(previous, {}, first_run=False)
        intents = detector.detect(previous, _snapshot(_make_snapshot(in_stock=True)), first_run=False)

        assert [i.kind for i in intents] == [AlertKind.STOCK]


class TestMultipleProductChanges:
    """Tests for ordering and mixed changes."""

    def test_intents_follow_snapshot_order(self) -> None:
        detector = ChangeDetector()
        previous = _snapshot(_make_snapshot(link="https://fc.com/b", in_stock=False))
        current = _snapshot(
            _make_snapshot(link="https://fc.com/a"),
            _make_snapshot(link="https://fc.com/b"),
            _make_snapshot(link="https://fc.com/c"),
        )

        intents = detector.detect(previous, current, first_run=False)

        assert [(i.kind, i.product.link) for i in intents] == [
            (AlertKind.NEW, "https://fc.com/a"),
            (AlertKind.STOCK, "https://fc.com/b"),
            (AlertKind.NEW, "https://fc.com/c"),
        ]

    def test_identical_snapshot_twice(self) -> None:
        detector = ChangeDetector()
        current = _snapshot(
            _make_snapshot(link="https://fc.com/a"),
            _make_snapshot(link="https://fc.com/b", in_stock=False),
        )
        previous: dict[str, ProductSnapshot] = {}

        detector.detect(previous, current, first_run=False)
        intents = detector.detect(previous, current, first_run=False)

        assert intents == []

    def test_both_empty(self) -> None:
        detector = ChangeDetector()

        assert detector.detect({}, {}, first_run=False) == []
