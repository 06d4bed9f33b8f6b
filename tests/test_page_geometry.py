"""Tests for the page_geometry engine."""

import pytest

from page_geometry import (
    MAX_REPORTED_PAGES,
    WATERMARK_FONT_SIZE,
    CropSpec,
    Document,
    EmptyDocumentError,
    InvalidCropError,
    InvalidPageNumberSettingsError,
    InvalidRotationError,
    InvalidTextPlacementError,
    Page,
    PageNumberSpec,
    PageRangeError,
    crop_document,
    document_info,
    estimate_text_width,
    format_page_number,
    get_page,
    map_click_to_pdf_coords,
    map_pdf_to_click_coords,
    number_pages,
    parse_page_selection,
    place_page_number,
    place_text,
    place_watermark,
    remove_page_set,
    remove_pages,
    rotate_page,
    watermark_document,
)

LETTER = (612.0, 792.0)


def fixed_width(width):
    return lambda text, font_size: width


class TestDocument:
    def test_from_sizes_numbers_pages(self):
        doc = Document.from_sizes([LETTER, (595.0, 842.0)])
        assert len(doc) == 2
        assert [p.index for p in doc] == [1, 2]
        assert [p.source_index for p in doc] == [0, 1]
        assert doc.pages[1].height == 842.0

    def test_pages_stored_as_tuple(self):
        doc = Document([Page(width=10, height=10)])
        assert isinstance(doc.pages, tuple)

    def test_index_follows_position(self):
        doc = Document([Page(612, 792, index=5), Page(612, 792)])
        assert [p.index for p in doc] == [1, 2]

    def test_document_info(self):
        doc = Document.from_sizes([LETTER], rotations=[90])
        info = document_info(doc)
        assert info["page_count"] == 1
        assert info["pages"][0] == {"index": 1, "width": 612.0, "height": 792.0, "rotation": 90}

    def test_get_page_out_of_range(self):
        doc = Document.from_sizes([LETTER])
        assert get_page(doc, 1).index == 1
        with pytest.raises(PageRangeError):
            get_page(doc, 2)


class TestCropDocument:
    def test_letter_ten_percent(self):
        doc = Document.from_sizes([LETTER])
        page = crop_document(doc, CropSpec(10, 10, 10, 10)).pages[0]
        assert page.width == pytest.approx(489.6)
        assert page.height == pytest.approx(633.6)
        assert page.x == pytest.approx(61.2)
        assert page.y == pytest.approx(79.2)

    def test_uses_bottom_margin_for_origin(self):
        doc = Document.from_sizes([(100.0, 200.0)])
        page = crop_document(doc, CropSpec(left_pct=0, right_pct=0, top_pct=50, bottom_pct=25)).pages[0]
        assert page.y == pytest.approx(50.0)
        assert page.height == pytest.approx(50.0)

    def test_preserves_count_order_and_rotation(self):
        doc = Document.from_sizes([LETTER, (595.0, 842.0), (300.0, 300.0)], rotations=[0, 90, 180])
        cropped = crop_document(doc, CropSpec(5, 15, 20, 30))
        assert len(cropped) == 3
        assert [p.index for p in cropped] == [1, 2, 3]
        assert [p.rotation for p in cropped] == [0, 90, 180]
        assert all(p.width > 0 and p.height > 0 for p in cropped)

    def test_offsets_compose_with_existing_box(self):
        doc = Document([Page(width=200.0, height=100.0, x=10.0, y=20.0)])
        page = crop_document(doc, CropSpec(left_pct=10, bottom_pct=10)).pages[0]
        assert page.x == pytest.approx(30.0)
        assert page.y == pytest.approx(30.0)

    def test_does_not_mutate_input(self):
        doc = Document.from_sizes([LETTER])
        crop_document(doc, CropSpec(10, 10, 10, 10))
        assert doc.pages[0].width == 612.0
        assert doc.pages[0].x == 0.0

    def test_zero_crop_is_identity(self):
        doc = Document.from_sizes([LETTER])
        assert crop_document(doc, CropSpec()) == doc

    def test_collapsed_width_rejected(self):
        doc = Document.from_sizes([LETTER])
        with pytest.raises(InvalidCropError) as excinfo:
            crop_document(doc, CropSpec(left_pct=60, right_pct=40))
        assert excinfo.value.page_index == 1

    def test_collapsed_height_rejected(self):
        doc = Document.from_sizes([LETTER])
        with pytest.raises(InvalidCropError):
            crop_document(doc, CropSpec(top_pct=70, bottom_pct=40))

    def test_margin_out_of_range(self):
        doc = Document.from_sizes([LETTER])
        with pytest.raises(InvalidCropError) as excinfo:
            crop_document(doc, CropSpec(left_pct=-1))
        assert excinfo.value.field_name == "left_pct"
        assert excinfo.value.to_dict()["field"] == "left_pct"

    def test_error_reports_page_index(self):
        doc = Document.from_sizes([LETTER, LETTER])
        with pytest.raises(InvalidCropError) as excinfo:
            crop_document(doc, CropSpec(left_pct=50, right_pct=50))
        assert excinfo.value.to_dict()["page"] == 1


class TestParsePageSelection:
    def test_singles_and_ranges(self):
        assert parse_page_selection("1,3-5", 5).pages == {1, 3, 4, 5}

    def test_whitespace(self):
        assert parse_page_selection(" 2 , 4 - 6 ", 6).pages == {2, 4, 5, 6}

    def test_duplicates_collapse(self):
        assert parse_page_selection("1,1,1-2,2", 3).pages == {1, 2}

    def test_malformed_tokens_skipped(self):
        selection = parse_page_selection("a,3,5-2,x-4,,7", 10)
        assert selection.pages == {3, 7}
        assert selection.out_of_range == ()

    def test_empty(self):
        assert parse_page_selection("", 3).pages == set()
        assert parse_page_selection(None, 3).pages == set()

    def test_huge_range_clipped_to_document(self):
        selection = parse_page_selection("1-10000000000", 3)
        assert selection.pages == {1, 2, 3}
        assert selection.out_of_range == ((4, 10000000000),)

    def test_runs_below_one_kept_whole(self):
        selection = parse_page_selection("0,2", 3)
        assert selection.pages == {2}
        assert selection.out_of_range == ((0, 0),)


class TestRemovePages:
    def test_remove_two_of_five(self):
        doc = Document.from_sizes([LETTER] * 5)
        result = remove_pages(doc, "2,4")
        assert len(result) == 3
        assert [p.source_index for p in result] == [0, 2, 4]
        assert [p.index for p in result] == [1, 2, 3]

    def test_preserves_page_attributes(self):
        doc = Document.from_sizes([LETTER, (595.0, 842.0), (300.0, 400.0)], rotations=[0, 90, 270])
        result = remove_pages(doc, "1")
        assert [(p.width, p.height, p.rotation) for p in result] == [
            (595.0, 842.0, 90),
            (300.0, 400.0, 270),
        ]

    @pytest.mark.parametrize("total,selection", [(2, {1}), (4, {2, 3}), (6, {1, 3, 6})])
    def test_kept_set_in_original_order(self, total, selection):
        doc = Document.from_sizes([LETTER] * total)
        result = remove_page_set(doc, selection)
        expected = [n - 1 for n in range(1, total + 1) if n not in selection]
        assert len(result) == total - len(selection)
        assert [p.source_index for p in result] == expected

    def test_remove_all_pages(self):
        doc = Document.from_sizes([LETTER] * 5)
        with pytest.raises(EmptyDocumentError):
            remove_pages(doc, "1-5")

    def test_out_of_range(self):
        doc = Document.from_sizes([LETTER] * 5)
        with pytest.raises(PageRangeError) as excinfo:
            remove_pages(doc, "0,2,9")
        assert excinfo.value.invalid_pages == ["0", "9"]
        assert excinfo.value.total_pages == 5

    def test_empty_selection(self):
        doc = Document.from_sizes([LETTER] * 3)
        with pytest.raises(PageRangeError) as excinfo:
            remove_pages(doc, "abc")
        assert excinfo.value.invalid_pages == []

    def test_input_untouched(self):
        doc = Document.from_sizes([LETTER] * 3)
        remove_pages(doc, "2")
        assert len(doc) == 3

    def test_huge_range_reported_as_one_run(self):
        doc = Document.from_sizes([LETTER] * 3)
        with pytest.raises(PageRangeError) as excinfo:
            remove_pages(doc, "2-10000000000")
        assert excinfo.value.invalid_pages == ["4-10000000000"]
        assert len(str(excinfo.value)) < 200

    def test_reported_pages_capped(self):
        doc = Document.from_sizes([LETTER] * 3)
        with pytest.raises(PageRangeError) as excinfo:
            remove_page_set(doc, set(range(100, 200)))
        error = excinfo.value
        assert len(error.invalid_pages) == MAX_REPORTED_PAGES
        assert error.invalid_pages[0] == "100"
        assert error.truncated
        assert error.to_dict()["truncated"] is True
        assert ", ..." in error.message

    def test_pages_built_without_index(self):
        doc = Document([Page(612, 792, source_index=0), Page(612, 792, source_index=1)])
        result = remove_pages(doc, "1")
        assert len(result) == 1
        assert result.pages[0].source_index == 1
        assert result.pages[0].index == 1


class TestRotatePage:
    def test_sets_rotation_of_one_page(self):
        doc = Document.from_sizes([LETTER] * 3)
        result = rotate_page(doc, 2, 90)
        assert [p.rotation for p in result] == [0, 90, 0]

    def test_pages_built_without_index(self):
        doc = Document([Page(612, 792, source_index=0), Page(612, 792, source_index=1)])
        result = rotate_page(doc, 2, 90)
        assert [p.rotation for p in result] == [0, 90]

    def test_negative_rotation_normalized(self):
        doc = Document.from_sizes([LETTER])
        assert rotate_page(doc, 1, -90).pages[0].rotation == 270

    def test_invalid_rotation(self):
        doc = Document.from_sizes([LETTER])
        with pytest.raises(InvalidRotationError):
            rotate_page(doc, 1, 45)

    def test_invalid_page(self):
        doc = Document.from_sizes([LETTER])
        with pytest.raises(PageRangeError):
            rotate_page(doc, 3, 90)


class TestPageNumbers:
    def test_format_with_total(self):
        spec = PageNumberSpec(format="Page {n} of {t}")
        page = Page(width=612.0, height=792.0, index=3)
        placement = place_page_number(page, 3, 10, spec)
        assert placement.text == "Page 3 of 10"

    def test_start_number_offsets(self):
        spec = PageNumberSpec(start_number=5, format="{n}")
        assert format_page_number(spec, 1, 3) == "5"
        assert format_page_number(spec, 3, 3) == "7"

    def test_total_substituted_without_include_total(self):
        spec = PageNumberSpec(format="{n}/{t}", include_total=False)
        assert format_page_number(spec, 2, 4) == "2/4"

    def test_default_template_follows_include_total(self):
        assert PageNumberSpec().template == "Page {n}"
        assert PageNumberSpec(include_total=True).template == "Page {n} of {t}"

    def test_bottom_center(self):
        spec = PageNumberSpec(position="bottom-center", margin_bottom=20)
        placement = place_page_number(Page(*LETTER), 1, 1, spec, measure=fixed_width(40))
        assert placement.x == pytest.approx(286.0)
        assert placement.y == pytest.approx(20.0)

    def test_top_left(self):
        spec = PageNumberSpec(position="top-left", margin_top=20, font_size=12)
        placement = place_page_number(Page(*LETTER), 1, 1, spec, measure=fixed_width(40))
        assert placement.x == pytest.approx(36.0)
        assert placement.y == pytest.approx(760.0)

    def test_bottom_right(self):
        spec = PageNumberSpec(position="bottom-right")
        placement = place_page_number(Page(*LETTER), 1, 1, spec, measure=fixed_width(40))
        assert placement.x == pytest.approx(612.0 - 36.0 - 40.0)

    def test_default_measure(self):
        assert estimate_text_width("abcd", 10) == pytest.approx(20.0)

    def test_number_pages_covers_document(self):
        doc = Document.from_sizes([LETTER] * 4)
        placements = number_pages(doc, PageNumberSpec(format="{n}/{t}"))
        assert [p.text for p in placements] == ["1/4", "2/4", "3/4", "4/4"]

    @pytest.mark.parametrize(
        "kwargs,field_name",
        [
            ({"font_size": 0}, "font_size"),
            ({"start_number": 0}, "start_number"),
            ({"margin_top": -1}, "margin_top"),
            ({"margin_bottom": 900}, "margin_bottom"),
            ({"margin_right": 700}, "margin_right"),
            ({"position": "middle"}, "position"),
        ],
    )
    def test_invalid_settings(self, kwargs, field_name):
        with pytest.raises(InvalidPageNumberSettingsError) as excinfo:
            place_page_number(Page(*LETTER), 1, 1, PageNumberSpec(**kwargs))
        assert excinfo.value.field_name == field_name

    def test_page_index_out_of_range(self):
        with pytest.raises(PageRangeError):
            place_page_number(Page(*LETTER), 4, 3, PageNumberSpec())


class TestWatermark:
    def test_centered_with_fixed_style(self):
        placement = place_watermark(Page(*LETTER), "DRAFT", measure=fixed_width(100))
        assert placement.x == pytest.approx(256.0)
        assert placement.y == pytest.approx(396.0)
        assert placement.rotation == 45.0
        assert placement.opacity == 0.3
        assert placement.font_size == WATERMARK_FONT_SIZE

    def test_every_page_gets_one(self):
        doc = Document.from_sizes([LETTER, (595.0, 842.0)])
        placements = watermark_document(doc, "DRAFT")
        assert len(placements) == 2
        assert placements[1].y == pytest.approx(421.0)

    def test_empty_text_rejected(self):
        with pytest.raises(InvalidTextPlacementError):
            place_watermark(Page(*LETTER), "  ")


class TestClickMapping:
    def test_click_to_pdf(self):
        point = map_click_to_pdf_coords(150, 300, 1.5, 842)
        assert point.x == 100
        assert point.y == 642

    def test_inverse_reproduces_click(self):
        point = map_click_to_pdf_coords(150, 300, 1.5, 842)
        back = map_pdf_to_click_coords(point.x, point.y, 1.5, 842)
        assert (back.x, back.y) == (150, 300)

    def test_non_positive_scale(self):
        with pytest.raises(InvalidTextPlacementError):
            map_click_to_pdf_coords(1, 1, 0, 842)

    @pytest.mark.parametrize("scale", [float("nan"), float("inf")])
    def test_non_finite_scale(self, scale):
        with pytest.raises(InvalidTextPlacementError):
            map_click_to_pdf_coords(1, 1, scale, 842)

    def test_place_text(self):
        page = Page(width=595.0, height=842.0)
        placement = place_text(page, "Hello", 150, 300, 1.5)
        assert (placement.x, placement.y) == (100, 642)
        assert placement.font_size == 12.0

    def test_place_text_requires_text(self):
        with pytest.raises(InvalidTextPlacementError):
            place_text(Page(*LETTER), "", 1, 1, 1.5)
