from flask import Flask, request, jsonify, send_file
from werkzeug.utils import secure_filename
from flask_cors import CORS
from PyPDF2 import PdfReader, PdfWriter
from PyPDF2.generic import RectangleObject
from reportlab.pdfbase.pdfmetrics import stringWidth
from reportlab.pdfgen import canvas
import fitz
import io
import math
from PIL import Image

from page_geometry import (
    CropSpec,
    Document,
    Page,
    PageGeometryError,
    PageLimitError,
    PageNumberSpec,
    crop_document,
    document_info,
    get_page,
    number_pages,
    place_text,
    remove_pages,
    rotate_page,
    watermark_document,
)

app = Flask(__name__)
CORS(app)

app.config['MAX_CONTENT_LENGTH'] = 50 * 1024 * 1024
app.config['MAX_PAGES'] = 2000
app.config['DEFAULT_DISPLAY_SCALE'] = 1.5
app.config.from_prefixed_env('PDF_TOOLKIT')

ALLOWED_EXTENSIONS = {'pdf'}
FONT_NAME = 'Helvetica'


class InvalidRequestError(ValueError):
    """Missing upload, unreadable PDF or a malformed form value."""


def allowed_file(filename):
    return '.' in filename and filename.rsplit('.', 1)[1].lower() in ALLOWED_EXTENSIONS


def measure_text(text, font_size):
    return stringWidth(text, FONT_NAME, font_size)


def read_pdf_upload():
    if 'file' not in request.files:
        raise InvalidRequestError('No file uploaded')

    file = request.files['file']
    if not file or not allowed_file(file.filename):
        raise InvalidRequestError('Invalid file type')

    data = file.read()
    if not data:
        raise InvalidRequestError('Uploaded file is empty')
    return data, file.filename


def form_float(name, default):
    value = request.form.get(name, '').strip()
    if not value:
        return default
    try:
        number = float(value)
    except ValueError:
        raise InvalidRequestError(f"Invalid value for '{name}': {value}")
    if not math.isfinite(number):
        raise InvalidRequestError(f"Invalid value for '{name}': {value}")
    return number


def form_int(name, default):
    value = request.form.get(name, '').strip()
    if not value:
        return default
    try:
        return int(value)
    except ValueError:
        raise InvalidRequestError(f"Invalid value for '{name}': {value}")


def form_bool(name):
    return request.form.get(name, '').strip().lower() in ('1', 'true', 'on', 'yes')


def download_name(filename, suffix, extension='pdf'):
    stem = secure_filename(filename).rsplit('.', 1)[0] or 'document'
    return f"{stem}-{suffix}.{extension}"


def send_pdf(output, filename, suffix):
    return send_file(
        io.BytesIO(output),
        mimetype='application/pdf',
        as_attachment=True,
        download_name=download_name(filename, suffix),
    )


def error_response(e):
    return jsonify(e.to_dict()), e.status_code


class PDFProcessor:
    """Byte-level codec: decodes uploads into Documents and writes edits back."""

    SAVE_OPTIONS = {
        'garbage': 4,
        'deflate': True,
        'clean': True,
    }

    @staticmethod
    def load_document(data, max_pages=None):
        # Decoding is all-or-nothing: any reader failure means an unusable upload
        try:
            reader = PdfReader(io.BytesIO(data))
            encrypted = reader.is_encrypted
            page_count = 0 if encrypted else len(reader.pages)
        except Exception as e:
            raise InvalidRequestError(f'Could not read PDF: {str(e)}') from e

        if encrypted:
            raise InvalidRequestError('PDF is password protected')
        if max_pages is not None and page_count > max_pages:
            raise PageLimitError(page_count, max_pages)

        try:
            pages = []
            for page_num, pdf_page in enumerate(reader.pages):
                box = pdf_page.cropbox
                pages.append(Page(
                    width=float(box.width),
                    height=float(box.height),
                    rotation=pdf_page.rotation % 360,
                    index=page_num + 1,
                    source_index=page_num,
                    x=float(box.left),
                    y=float(box.bottom),
                ))
        except Exception as e:
            raise InvalidRequestError(f'Could not read PDF: {str(e)}') from e

        if not pages:
            raise InvalidRequestError('PDF has no pages')
        return Document(pages)

    @staticmethod
    def write_boxes(data, document):
        """Set MediaBox and CropBox of every page to the document's boxes."""
        reader = PdfReader(io.BytesIO(data))
        writer = PdfWriter()
        for page in document:
            pdf_page = reader.pages[page.source_index]
            box = RectangleObject((page.x, page.y, page.x + page.width, page.y + page.height))
            pdf_page.mediabox = box
            pdf_page.cropbox = box
            writer.add_page(pdf_page)

        output = io.BytesIO()
        writer.write(output)
        return output.getvalue()

    @staticmethod
    def rebuild(data, document):
        """Build a new PDF from the document's pages, in order, with their rotations."""
        doc = fitz.open(stream=data, filetype='pdf')
        output_doc = fitz.open()
        for page in document:
            output_doc.insert_pdf(doc, from_page=page.source_index, to_page=page.source_index)
            output_doc[-1].set_rotation(page.rotation)

        output = output_doc.tobytes(**PDFProcessor.SAVE_OPTIONS)
        output_doc.close()
        doc.close()
        return output

    @staticmethod
    def stamp_text(data, document, placements):
        """Merge text overlays onto pages.

        ``placements`` runs parallel to the document's pages; each entry is
        a TextPlacement or None to leave the page untouched.
        """
        reader = PdfReader(io.BytesIO(data))
        writer = PdfWriter()
        for page, placement in zip(document, placements):
            pdf_page = reader.pages[page.source_index]
            if placement is not None:
                overlay = PDFProcessor._text_overlay(page, placement)
                pdf_page.merge_page(overlay)
            writer.add_page(pdf_page)

        output = io.BytesIO()
        writer.write(output)
        return output.getvalue()

    @staticmethod
    def _text_overlay(page, placement):
        packet = io.BytesIO()
        c = canvas.Canvas(packet, pagesize=(page.x + page.width, page.y + page.height))
        c.setFont(FONT_NAME, placement.font_size)
        c.saveState()
        if placement.opacity < 1:
            c.setFillAlpha(placement.opacity)
        # Placements are relative to the visible box
        c.translate(page.x + placement.x, page.y + placement.y)
        if placement.rotation:
            c.rotate(placement.rotation)
        c.drawString(0, 0, placement.text)
        c.restoreState()
        c.save()
        packet.seek(0)
        return PdfReader(packet).pages[0]

    @staticmethod
    def render_page(data, page_number, scale, format='png'):
        doc = fitz.open(stream=data, filetype='pdf')
        try:
            page = doc.load_page(page_number - 1)
            pix = page.get_pixmap(matrix=fitz.Matrix(scale, scale), alpha=False)
            image = Image.frombytes('RGB', (pix.width, pix.height), pix.samples)
        finally:
            doc.close()

        output = io.BytesIO()
        if format.lower() == 'jpg':
            image.save(output, format='JPEG', quality=90)
        else:
            image.save(output, format='PNG')
        return output.getvalue()


@app.route('/')
def home():
    return '''
    <!DOCTYPE html>
    <html lang="en">
    <head>
        <meta charset="UTF-8">
        <meta name="viewport" content="width=device-width, initial-scale=1.0">
        <title>PDF Toolkit</title>
        <style>
            * { margin: 0; padding: 0; box-sizing: border-box; }
            body {
                font-family: 'Segoe UI', Tahoma, Geneva, Verdana, sans-serif;
                background: linear-gradient(135deg, #667eea 0%, #764ba2 100%);
                min-height: 100vh; color: #333; padding: 20px;
            }
            .container { max-width: 1200px; margin: 0 auto; }
            header { text-align: center; margin-bottom: 40px; color: white; }
            header h1 { font-size: 3rem; margin-bottom: 10px; text-shadow: 2px 2px 4px rgba(0,0,0,0.3); }
            header p { font-size: 1.2rem; opacity: 0.9; }
            .tool-grid {
                display: grid;
                grid-template-columns: repeat(auto-fit, minmax(280px, 1fr));
                gap: 20px;
                margin-bottom: 40px;
            }
            .tool-card {
                background: white; border-radius: 15px; padding: 25px; text-align: center;
                box-shadow: 0 10px 30px rgba(0,0,0,0.2); transition: transform 0.3s ease;
                cursor: pointer;
            }
            .tool-card:hover { transform: translateY(-5px); }
            .tool-icon { font-size: 2.5rem; margin-bottom: 15px; color: #667eea; }
            .upload-area {
                background: white; border-radius: 15px; padding: 40px; text-align: center;
                box-shadow: 0 10px 30px rgba(0,0,0,0.2); margin-bottom: 20px;
            }
            .drop-zone {
                border: 3px dashed #667eea; border-radius: 10px; padding: 60px 20px;
                margin: 20px 0; transition: all 0.3s ease; background: #f8f9fa;
            }
            .drop-zone.active { border-color: #764ba2; background: #e9ecef; }
            .btn {
                background: linear-gradient(135deg, #667eea 0%, #764ba2 100%);
                color: white; border: none; padding: 15px 30px; border-radius: 25px;
                font-size: 1rem; cursor: pointer; transition: all 0.3s ease;
                display: inline-block; margin: 10px;
            }
            .btn:hover { transform: scale(1.05); }
            .btn:disabled { opacity: 0.6; cursor: not-allowed; transform: none; }
            .file-item {
                background: #f8f9fa; padding: 15px; border-radius: 8px;
                margin: 10px 0; display: flex; justify-content: space-between;
            }
            .page-preview {
                background: #d1ecf1; padding: 15px; border-radius: 8px;
                margin: 10px 0; text-align: center;
            }
            .canvas-wrap { margin: 15px 0; overflow: auto; }
            .canvas-wrap img { cursor: crosshair; border: 1px solid #ccc; }
            .hidden { display: none; }
            .options-panel {
                background: #f8f9fa; padding: 20px; border-radius: 10px;
                margin: 20px 0; text-align: left;
            }
            .option-group { margin-bottom: 15px; }
            .option-group label { display: block; margin-bottom: 5px; font-weight: bold; }
            .option-group select, .option-group input {
                width: 100%; padding: 10px; border: 2px solid #ddd;
                border-radius: 5px; font-size: 1rem;
            }
            .option-group input[type=checkbox] { width: auto; }
            .page-numbers {
                background: #fff3cd; padding: 10px; border-radius: 5px;
                margin: 10px 0; font-size: 0.9em;
            }
            footer { text-align: center; color: white; margin-top: 40px; opacity: 0.8; }
        </style>
    </head>
    <body>
        <div class="container">
            <header>
                <h1>PDF Toolkit</h1>
                <p>Crop, trim and annotate PDF pages</p>
            </header>

            <div class="tool-grid">
                <div class="tool-card" onclick="showTool('crop')">
                    <div class="tool-icon">&#9986;</div>
                    <h3>Crop PDF</h3>
                    <p>Trim page margins by percentage</p>
                </div>
                <div class="tool-card" onclick="showTool('remove-pages')">
                    <div class="tool-icon">&#10060;</div>
                    <h3>Remove Pages</h3>
                    <p>Delete specific pages from PDF</p>
                </div>
                <div class="tool-card" onclick="showTool('page-numbers')">
                    <div class="tool-icon">#</div>
                    <h3>Add Page Numbers</h3>
                    <p>Number every page of your PDF</p>
                </div>
                <div class="tool-card" onclick="showTool('watermark')">
                    <div class="tool-icon">&#128167;</div>
                    <h3>Watermark</h3>
                    <p>Stamp text diagonally across every page</p>
                </div>
                <div class="tool-card" onclick="showTool('add-text')">
                    <div class="tool-icon">T</div>
                    <h3>Add Text</h3>
                    <p>Click on a page to place text</p>
                </div>
                <div class="tool-card" onclick="showTool('rotate')">
                    <div class="tool-icon">&#8635;</div>
                    <h3>Rotate Page</h3>
                    <p>Rotate a single page</p>
                </div>
            </div>

            <div class="upload-area">
                <h2 id="tool-title">Select a Tool</h2>
                <p id="tool-description">Choose a tool from above to get started</p>

                <div class="drop-zone" id="dropZone">
                    <h3>Drop your PDF here</h3>
                    <p>or click to browse</p>
                    <input type="file" id="fileInput" accept=".pdf" class="hidden">
                </div>

                <div id="file-list"></div>
                <div id="page-preview" class="page-preview hidden"></div>
                <div id="canvas-wrap" class="canvas-wrap hidden">
                    <img id="page-image" alt="Page preview">
                    <p id="click-info">Click on the page to place the text</p>
                </div>
                <div id="options-panel" class="options-panel hidden"></div>

                <button id="process-btn" class="btn" disabled>Process File</button>
            </div>
        </div>

        <footer>
            <p>&copy; 2024 PDF Toolkit. All rights reserved.</p>
        </footer>

        <script>
            let currentTool = '';
            let uploadedFile = null;
            let pageInfo = null;
            let click = null;
            const displayScale = 1.5;

            const toolConfigs = {
                'crop': { title: 'Crop PDF', endpoint: '/api/crop', description: 'Remove a percentage of each page edge' },
                'remove-pages': { title: 'Remove PDF Pages', endpoint: '/api/remove-pages', description: 'Delete specific pages from your PDF' },
                'page-numbers': { title: 'Add Page Numbers', endpoint: '/api/page-numbers', description: 'Add page numbers in the position you choose' },
                'watermark': { title: 'Watermark PDF', endpoint: '/api/watermark', description: 'Stamp semi-transparent text on every page' },
                'add-text': { title: 'Add Text', endpoint: '/api/add-text', description: 'Place text where you click on the page' },
                'rotate': { title: 'Rotate Page', endpoint: '/api/rotate', description: 'Set the rotation of one page' }
            };

            const optionTemplates = {
                'crop': ['left', 'right', 'top', 'bottom'].map(edge => `
                    <div class="option-group">
                        <label for="${edge}">${edge[0].toUpperCase() + edge.slice(1)} (%)</label>
                        <input type="number" id="${edge}" min="0" max="100" step="0.1" value="0">
                    </div>`).join(''),
                'remove-pages': `
                    <div class="option-group">
                        <label for="pages_to_remove">Pages to Remove:</label>
                        <input type="text" id="pages_to_remove" placeholder="e.g., 1, 3, 5-8">
                    </div>
                    <div class="page-numbers">Separate pages/ranges with commas. Mixed: 1, 3-5, 7</div>`,
                'page-numbers': `
                    <div class="option-group">
                        <label for="position">Position:</label>
                        <select id="position">
                            <option value="top-left">Top Left</option>
                            <option value="top-center">Top Center</option>
                            <option value="top-right">Top Right</option>
                            <option value="bottom-left">Bottom Left</option>
                            <option value="bottom-center" selected>Bottom Center</option>
                            <option value="bottom-right">Bottom Right</option>
                        </select>
                    </div>
                    <div class="option-group"><label for="start_number">Start Number:</label>
                        <input type="number" id="start_number" min="1" value="1"></div>
                    <div class="option-group"><label for="font_size">Font Size:</label>
                        <input type="number" id="font_size" min="8" max="72" value="12"></div>
                    <div class="option-group"><label for="format">Format:</label>
                        <input type="text" id="format" placeholder="Page {n}"></div>
                    <div class="option-group"><label for="margin_top">Top Margin:</label>
                        <input type="number" id="margin_top" min="0" value="20"></div>
                    <div class="option-group"><label for="margin_bottom">Bottom Margin:</label>
                        <input type="number" id="margin_bottom" min="0" value="20"></div>
                    <div class="option-group"><label>
                        <input type="checkbox" id="include_total"> Show total pages (e.g., "Page 1 of 10")</label></div>`,
                'watermark': `
                    <div class="option-group"><label for="text">Watermark Text:</label>
                        <input type="text" id="text" placeholder="Enter watermark text"></div>`,
                'add-text': `
                    <div class="option-group"><label for="text">Text:</label>
                        <input type="text" id="text" placeholder="Enter text"></div>
                    <div class="option-group"><label for="page">Page:</label>
                        <input type="number" id="page" min="1" value="1" onchange="renderPreview()"></div>`,
                'rotate': `
                    <div class="option-group"><label for="page">Page:</label>
                        <input type="number" id="page" min="1" value="1"></div>
                    <div class="option-group"><label for="rotation">Rotation:</label>
                        <select id="rotation">
                            <option value="0">0&deg;</option>
                            <option value="90">90&deg;</option>
                            <option value="180">180&deg;</option>
                            <option value="270">270&deg;</option>
                        </select></div>`
            };

            const toolFields = {
                'crop': ['left', 'right', 'top', 'bottom'],
                'remove-pages': ['pages_to_remove'],
                'page-numbers': ['position', 'start_number', 'font_size', 'format', 'margin_top', 'margin_bottom'],
                'watermark': ['text'],
                'add-text': ['text', 'page'],
                'rotate': ['page', 'rotation']
            };

            function showTool(tool) {
                currentTool = tool;
                const config = toolConfigs[tool];
                document.getElementById('tool-title').textContent = config.title;
                document.getElementById('tool-description').textContent = config.description;
                const optionsPanel = document.getElementById('options-panel');
                optionsPanel.innerHTML = optionTemplates[tool];
                optionsPanel.classList.remove('hidden');
                resetUploadArea();
            }

            const dropZone = document.getElementById('dropZone');
            const fileInput = document.getElementById('fileInput');
            const processBtn = document.getElementById('process-btn');
            const pageImage = document.getElementById('page-image');

            dropZone.addEventListener('click', () => fileInput.click());
            dropZone.addEventListener('dragover', (e) => { e.preventDefault(); dropZone.classList.add('active'); });
            dropZone.addEventListener('dragleave', () => { dropZone.classList.remove('active'); });
            dropZone.addEventListener('drop', (e) => { e.preventDefault(); dropZone.classList.remove('active'); handleFiles(e.dataTransfer.files); });
            fileInput.addEventListener('change', (e) => { handleFiles(e.target.files); });

            pageImage.addEventListener('click', (e) => {
                click = { x: e.offsetX, y: e.offsetY };
                document.getElementById('click-info').textContent = `Text position: ${click.x}, ${click.y}`;
                updateProcessButton();
            });

            async function handleFiles(files) {
                if (!files.length) return;
                uploadedFile = files[0];
                document.getElementById('file-list').innerHTML =
                    `<div class="file-item"><span>${uploadedFile.name} (${formatFileSize(uploadedFile.size)})</span></div>`;
                updateProcessButton();
                try {
                    pageInfo = await postForm('/api/get-page-count', new FormData()).then(r => r.json());
                    const first = pageInfo.pages[0];
                    const preview = document.getElementById('page-preview');
                    preview.innerHTML = `Total pages in document: <strong>${pageInfo.page_count}</strong>` +
                        ` &middot; Page size: ${Math.round(first.width)} &times; ${Math.round(first.height)} pt`;
                    preview.classList.remove('hidden');
                    if (currentTool === 'add-text') renderPreview();
                } catch (error) {
                    console.error('Error getting page count:', error);
                }
            }

            async function renderPreview() {
                if (!uploadedFile) return;
                const formData = new FormData();
                formData.append('page', document.getElementById('page')?.value || '1');
                formData.append('scale', displayScale);
                const response = await postForm('/api/render-page', formData);
                if (!response.ok) return;
                pageImage.src = URL.createObjectURL(await response.blob());
                document.getElementById('canvas-wrap').classList.remove('hidden');
                click = null;
                updateProcessButton();
            }

            function postForm(endpoint, formData) {
                formData.append('file', uploadedFile);
                return fetch(endpoint, { method: 'POST', body: formData });
            }

            function updateProcessButton() {
                processBtn.disabled = !uploadedFile || !currentTool || (currentTool === 'add-text' && !click);
            }

            function formatFileSize(bytes) {
                if (bytes === 0) return '0 Bytes';
                const k = 1024;
                const sizes = ['Bytes', 'KB', 'MB', 'GB'];
                const i = Math.floor(Math.log(bytes) / Math.log(k));
                return parseFloat((bytes / Math.pow(k, i)).toFixed(2)) + ' ' + sizes[i];
            }

            function resetUploadArea() {
                uploadedFile = null;
                pageInfo = null;
                click = null;
                fileInput.value = '';
                document.getElementById('file-list').innerHTML = '';
                document.getElementById('page-preview').classList.add('hidden');
                document.getElementById('canvas-wrap').classList.add('hidden');
                processBtn.disabled = true;
            }

            processBtn.addEventListener('click', async () => {
                processBtn.disabled = true;
                try {
                    const formData = new FormData();
                    for (const field of toolFields[currentTool]) {
                        const value = document.getElementById(field)?.value;
                        if (value) formData.append(field, value);
                    }
                    if (currentTool === 'page-numbers' && document.getElementById('include_total').checked) {
                        formData.append('include_total', 'true');
                    }
                    if (currentTool === 'add-text') {
                        formData.append('click_x', click.x);
                        formData.append('click_y', click.y);
                        formData.append('scale', displayScale);
                    }

                    const response = await postForm(toolConfigs[currentTool].endpoint, formData);
                    if (!response.ok) {
                        const data = await response.json();
                        throw new Error(data.error || `Server error: ${response.status}`);
                    }

                    const blob = await response.blob();
                    const url = window.URL.createObjectURL(blob);
                    const a = document.createElement('a');
                    a.href = url;
                    a.download = `${currentTool}.pdf`;
                    document.body.appendChild(a);
                    a.click();
                    setTimeout(() => {
                        window.URL.revokeObjectURL(url);
                        document.body.removeChild(a);
                    }, 100);
                } catch (error) {
                    console.error('Error:', error);
                    alert('Error processing file: ' + error.message);
                } finally {
                    updateProcessButton();
                }
            });
        </script>
    </body>
    </html>
    '''


@app.route('/api/get-page-count', methods=['POST'])
def api_get_page_count():
    try:
        data, _ = read_pdf_upload()
        document = PDFProcessor.load_document(data, app.config['MAX_PAGES'])
        return jsonify(document_info(document))
    except InvalidRequestError as e:
        return jsonify({'error': str(e)}), 400
    except PageGeometryError as e:
        return error_response(e)
    except Exception as e:
        app.logger.exception('Page count error')
        return jsonify({'error': f'Could not get page count: {str(e)}'}), 500


@app.route('/api/render-page', methods=['POST'])
def api_render_page():
    try:
        data, filename = read_pdf_upload()
        page_number = form_int('page', 1)
        scale = form_float('scale', app.config['DEFAULT_DISPLAY_SCALE'])
        image_format = request.form.get('format', 'png').lower()
        if scale <= 0:
            raise InvalidRequestError('Scale must be positive')
        if image_format not in ('png', 'jpg'):
            raise InvalidRequestError(f'Unsupported image format: {image_format}')

        document = PDFProcessor.load_document(data, app.config['MAX_PAGES'])
        get_page(document, page_number)

        output = PDFProcessor.render_page(data, page_number, scale, image_format)
        return send_file(
            io.BytesIO(output),
            mimetype='image/jpeg' if image_format == 'jpg' else 'image/png',
            download_name=download_name(filename, f'page-{page_number}', image_format),
        )
    except InvalidRequestError as e:
        return jsonify({'error': str(e)}), 400
    except PageGeometryError as e:
        return error_response(e)
    except Exception as e:
        app.logger.exception('Render error')
        return jsonify({'error': f'Render failed: {str(e)}'}), 500


@app.route('/api/crop', methods=['POST'])
def api_crop():
    try:
        data, filename = read_pdf_upload()
        spec = CropSpec(
            left_pct=form_float('left', 0.0),
            right_pct=form_float('right', 0.0),
            top_pct=form_float('top', 0.0),
            bottom_pct=form_float('bottom', 0.0),
        )

        document = PDFProcessor.load_document(data, app.config['MAX_PAGES'])
        cropped = crop_document(document, spec)
        output = PDFProcessor.write_boxes(data, cropped)

        app.logger.info('Cropped %d pages of %s', len(cropped), filename)
        return send_pdf(output, filename, 'cropped')
    except InvalidRequestError as e:
        return jsonify({'error': str(e)}), 400
    except PageGeometryError as e:
        return error_response(e)
    except Exception as e:
        app.logger.exception('Crop error')
        return jsonify({'error': f'Crop failed: {str(e)}'}), 500


@app.route('/api/remove-pages', methods=['POST'])
def api_remove_pages():
    try:
        data, filename = read_pdf_upload()
        pages_to_remove = request.form.get('pages_to_remove', '')

        document = PDFProcessor.load_document(data, app.config['MAX_PAGES'])
        kept = remove_pages(document, pages_to_remove)
        output = PDFProcessor.rebuild(data, kept)

        app.logger.info('Removed %d of %d pages from %s',
                        len(document) - len(kept), len(document), filename)
        return send_pdf(output, filename, 'removed')
    except InvalidRequestError as e:
        return jsonify({'error': str(e)}), 400
    except PageGeometryError as e:
        return error_response(e)
    except Exception as e:
        app.logger.exception('Remove pages error')
        return jsonify({'error': f'Remove pages failed: {str(e)}'}), 500


@app.route('/api/page-numbers', methods=['POST'])
def api_page_numbers():
    try:
        data, filename = read_pdf_upload()
        spec = PageNumberSpec(
            position=request.form.get('position', 'bottom-center'),
            start_number=form_int('start_number', 1),
            format=request.form.get('format') or None,
            font_size=form_float('font_size', 12.0),
            margin_top=form_float('margin_top', 20.0),
            margin_bottom=form_float('margin_bottom', 20.0),
            include_total=form_bool('include_total'),
        )

        document = PDFProcessor.load_document(data, app.config['MAX_PAGES'])
        placements = number_pages(document, spec, measure=measure_text)
        output = PDFProcessor.stamp_text(data, document, placements)

        app.logger.info('Numbered %d pages of %s', len(document), filename)
        return send_pdf(output, filename, 'numbered')
    except InvalidRequestError as e:
        return jsonify({'error': str(e)}), 400
    except PageGeometryError as e:
        return error_response(e)
    except Exception as e:
        app.logger.exception('Page numbers error')
        return jsonify({'error': f'Page numbers failed: {str(e)}'}), 500


@app.route('/api/watermark', methods=['POST'])
def api_watermark():
    try:
        data, filename = read_pdf_upload()
        text = request.form.get('text', '')

        document = PDFProcessor.load_document(data, app.config['MAX_PAGES'])
        placements = watermark_document(document, text, measure=measure_text)
        output = PDFProcessor.stamp_text(data, document, placements)

        app.logger.info('Watermarked %d pages of %s', len(document), filename)
        return send_pdf(output, filename, 'watermarked')
    except InvalidRequestError as e:
        return jsonify({'error': str(e)}), 400
    except PageGeometryError as e:
        return error_response(e)
    except Exception as e:
        app.logger.exception('Watermark error')
        return jsonify({'error': f'Watermark failed: {str(e)}'}), 500


@app.route('/api/add-text', methods=['POST'])
def api_add_text():
    try:
        data, filename = read_pdf_upload()
        text = request.form.get('text', '')
        page_number = form_int('page', 1)
        click_x = form_float('click_x', None)
        click_y = form_float('click_y', None)
        scale = form_float('scale', app.config['DEFAULT_DISPLAY_SCALE'])
        if click_x is None or click_y is None:
            raise InvalidRequestError('Click position is required')

        document = PDFProcessor.load_document(data, app.config['MAX_PAGES'])
        page = get_page(document, page_number)
        placement = place_text(page, text, click_x, click_y, scale)
        placements = [placement if p.index == page_number else None for p in document]
        output = PDFProcessor.stamp_text(data, document, placements)

        app.logger.info('Added text to page %d of %s at (%.1f, %.1f)',
                        page_number, filename, placement.x, placement.y)
        return send_pdf(output, filename, 'edited')
    except InvalidRequestError as e:
        return jsonify({'error': str(e)}), 400
    except PageGeometryError as e:
        return error_response(e)
    except Exception as e:
        app.logger.exception('Add text error')
        return jsonify({'error': f'Add text failed: {str(e)}'}), 500


@app.route('/api/rotate', methods=['POST'])
def api_rotate():
    try:
        data, filename = read_pdf_upload()
        page_number = form_int('page', 1)
        rotation = form_int('rotation', 0)

        document = PDFProcessor.load_document(data, app.config['MAX_PAGES'])
        rotated = rotate_page(document, page_number, rotation)
        output = PDFProcessor.rebuild(data, rotated)

        app.logger.info('Rotated page %d of %s to %d degrees', page_number, filename, rotation)
        return send_pdf(output, filename, 'rotated')
    except InvalidRequestError as e:
        return jsonify({'error': str(e)}), 400
    except PageGeometryError as e:
        return error_response(e)
    except Exception as e:
        app.logger.exception('Rotate error')
        return jsonify({'error': f'Rotate failed: {str(e)}'}), 500


@app.errorhandler(413)
def file_too_large(e):
    return jsonify({'error': 'File too large'}), 413


if __name__ == '__main__':
    print("PDF Toolkit starting on http://localhost:5000")
    print(f"Page limit: {app.config['MAX_PAGES']} pages per document")
    app.run(debug=True, host='0.0.0.0', port=5000)
