import streamlit as st
import pandas as pd

from stockpail.config import get_settings
from stockpail.logging import configure_logging
from stockpail.records import STOCK_STATUSES
from stockpail.store import SqlRecordStore, SqlDocumentStore, LocalFileStore
from stockpail.stock_service import StockService
from stockpail.data_import import import_csv, import_excel
from stockpail.data_export import export_records
from stockpail.schema_designer import SchemaDesigner, FIELD_TYPES, TEMPLATES
from stockpail.stock_views import classify_quantity, filter_and_sort, group_records
from stockpail.analytics import compute_analytics, stock_overview
from stockpail.documents import DocumentService, document_text, export_edited
from stockpail.spreadsheet import SpreadsheetGrid

settings = get_settings()
configure_logging(settings.log_level, settings.log_format)

st.set_page_config(
    page_title=settings.app_title,
    page_icon="◼",
    layout="wide",
    initial_sidebar_state="collapsed"
)

st.markdown("""
<style>
    @import url('https://fonts.googleapis.com/css2?family=Inter:wght@400;500;600;700&display=swap');

    * {
        font-family: 'Inter', -apple-system, BlinkMacSystemFont, sans-serif;
    }

    .block-container {
        padding: 1.5rem 3rem 2rem 3rem;
    }

    #MainMenu, footer {visibility: hidden;}

    .header-bar {
        display: flex;
        justify-content: space-between;
        align-items: center;
        padding-bottom: 1.5rem;
        border-bottom: 1px solid #f0f0f0;
        margin-bottom: 1.5rem;
    }

    .logo {
        font-size: 1.1rem;
        font-weight: 600;
        color: #111;
        letter-spacing: -0.02em;
    }

    .section-label {
        font-size: 0.6rem;
        color: #999;
        text-transform: uppercase;
        letter-spacing: 0.1em;
        margin-bottom: 0.75rem;
    }

    .badge {
        font-size: 0.7rem;
        font-weight: 600;
        padding: 0.15rem 0.5rem;
        border-radius: 4px;
    }

    .badge.out_of_stock { background: #fee2e2; color: #991b1b; }
    .badge.low_stock { background: #fef3c7; color: #854d0e; }
    .badge.normal { background: #dcfce7; color: #166534; }
</style>
""", unsafe_allow_html=True)


def notify(result):
    """Render an OperationResult."""
    if result:
        if result.message:
            st.success(result.message)
    else:
        st.error(result.message)


if "stock_service" not in st.session_state:
    st.session_state.stock_service = StockService(SqlRecordStore(settings.database_url))
    st.session_state.stock_service.refresh()
    st.session_state.document_service = DocumentService(
        SqlDocumentStore(settings.database_url),
        LocalFileStore(settings.storage_path)
    )
    st.session_state.document_service.refresh()
    st.session_state.designer = SchemaDesigner()
    st.session_state.grid = SpreadsheetGrid()

service = st.session_state.stock_service
documents = st.session_state.document_service
designer = st.session_state.designer
grid = st.session_state.grid

st.markdown(f"""
    <div class="header-bar">
        <div class="logo">{settings.app_title}</div>
    </div>
""", unsafe_allow_html=True)

stock_tab, io_tab, designer_tab, sheet_tab, docs_tab, analytics_tab = st.tabs(
    ["Stock", "Import / Export", "Schema Designer", "Spreadsheet", "Documents", "Analytics"]
)

# ═══════════════════════════════════════════════════════════════
# STOCK
# ═══════════════════════════════════════════════════════════════

with stock_tab:
    overview = stock_overview(service.stocks)
    c1, c2, c3, c4 = st.columns(4)
    c1.metric("Items", overview["total_items"])
    c2.metric("Total Quantity", overview["total_quantity"])
    c3.metric("Low Stock", overview["low_stock"])
    c4.metric("Out of Stock", overview["out_of_stock"])

    st.markdown('<div class="section-label">Add Stock</div>', unsafe_allow_html=True)
    with st.form("add_stock", clear_on_submit=True):
        col1, col2 = st.columns(2)
        batch_number = col1.text_input("Batch Number")
        stock_number = col2.text_input("Stock Number")
        description = st.text_input("Description")
        col3, col4 = st.columns(2)
        quantity = col3.number_input("Quantity", min_value=0, step=1, value=0)
        status = col4.selectbox("Status", STOCK_STATUSES)
        if st.form_submit_button("Add Stock"):
            notify(service.add_stock({
                "batchNumber": batch_number,
                "stockNumber": stock_number,
                "description": description,
                "quantity": int(quantity),
                "status": status,
            }))

    st.markdown('<div class="section-label">Stock Table</div>', unsafe_allow_html=True)
    col1, col2, col3, col4 = st.columns([3, 2, 1, 1])
    term = col1.text_input("Search", placeholder="Batch, stock or description")
    sort_field = col2.selectbox("Sort by", ["dateAdded", "batchNumber", "stockNumber", "quantity"])
    direction = col3.selectbox("Order", ["desc", "asc"])
    group_by = col4.selectbox("Group", ["none", "stock", "batch"])

    visible = filter_and_sort(service.stocks, term, sort_field, direction)
    st.caption(f"{len(visible)} of {len(service.stocks)} items")

    if group_by == "none":
        for stock in visible:
            row = st.columns([2, 2, 4, 1, 2, 1])
            row[0].write(stock.batch_number)
            row[1].write(stock.stock_number)
            row[2].write(stock.description)
            row[3].markdown(
                f'<span class="badge {classify_quantity(stock.quantity)}">{stock.quantity}</span>',
                unsafe_allow_html=True
            )
            row[4].write(stock.status)
            if row[5].button("Delete", key=f"delete-{stock.id}"):
                notify(service.delete_stock(stock.id))
                st.rerun()
    else:
        for group in group_records(visible, group_by):
            label = "Stock" if group_by == "stock" else "Batch"
            with st.expander(f"{label}: {group['key']} · {group['item_count']} items · Total: {group['total_quantity']}"):
                st.dataframe(pd.DataFrame([s.to_dict() for s in group["items"]]), use_container_width=True)

    if service.stocks:
        with st.expander("Edit a stock item"):
            selected_id = st.selectbox(
                "Item",
                [s.id for s in service.stocks],
                format_func=lambda stock_id: f"{service.get(stock_id).stock_number} / {service.get(stock_id).batch_number}"
            )
            selected = service.get(selected_id)
            col1, col2 = st.columns(2)
            new_batch = col1.text_input("Batch Number", selected.batch_number, key=f"eb-{selected.id}")
            new_stock = col2.text_input("Stock Number", selected.stock_number, key=f"es-{selected.id}")
            new_description = st.text_input("Description", selected.description, key=f"ed-{selected.id}")
            col3, col4 = st.columns(2)
            new_quantity = col3.number_input("Quantity", min_value=0, step=1, value=selected.quantity,
                                             key=f"eq-{selected.id}")
            new_status = col4.selectbox("Status", STOCK_STATUSES, index=STOCK_STATUSES.index(selected.status),
                                        key=f"est-{selected.id}")
            if st.button("Save changes"):
                notify(service.update_stock(selected.id, {
                    "batchNumber": new_batch,
                    "stockNumber": new_stock,
                    "description": new_description,
                    "quantity": int(new_quantity),
                    "status": new_status,
                }))

# ═══════════════════════════════════════════════════════════════
# IMPORT / EXPORT
# ═══════════════════════════════════════════════════════════════

with io_tab:
    left, right = st.columns(2)

    with left:
        st.markdown('<div class="section-label">Export Data</div>', unsafe_allow_html=True)
        for fmt, label in [("csv", "CSV"), ("xlsx", "Excel"), ("json", "JSON"), ("sql", "SQL")]:
            result = export_records(service.stocks, fmt)
            if result:
                export = result.value
                st.download_button(f"Export as {label}", export.content, file_name=export.filename,
                                   mime=export.mime_type, use_container_width=True)
        st.caption(f"{len(service.stocks)} stock items available for export")

    with right:
        st.markdown('<div class="section-label">Import Data</div>', unsafe_allow_html=True)
        csv_text = st.text_area(
            "CSV Data",
            placeholder="batch_number,stock_number,description,quantity\nBT001,SK001,Sample Item,50",
            height=160
        )
        if st.button("Import CSV Data", use_container_width=True):
            with st.spinner("Importing..."):
                result = import_csv(csv_text, service)
            notify(result)

        uploaded = st.file_uploader("Excel File", type=["xlsx", "xls"])
        if uploaded is not None and st.button("Import Excel File", use_container_width=True):
            with st.spinner("Importing..."):
                result = import_excel(uploaded, service)
            notify(result)

# ═══════════════════════════════════════════════════════════════
# SCHEMA DESIGNER
# ═══════════════════════════════════════════════════════════════

with designer_tab:
    col1, col2 = st.columns([3, 1])
    new_table = col1.text_input("New table name")
    if col2.button("Add Table"):
        notify(designer.add_table(new_table))

    template = st.selectbox("Template", ["None"] + list(TEMPLATES))
    if template != "None" and st.button("Use Template"):
        notify(designer.load_template(template))

    for table in list(designer.tables):
        with st.expander(f"{table.name} ({len(table.fields)} fields)", expanded=True):
            for field in list(table.fields):
                cols = st.columns([3, 2, 1, 1, 1, 3, 1])
                name = cols[0].text_input("Name", field.name, key=f"n-{field.id}")
                ftype = cols[1].selectbox("Type", FIELD_TYPES, index=FIELD_TYPES.index(field.type), key=f"t-{field.id}")
                nullable = cols[2].checkbox("Null", field.nullable, key=f"nl-{field.id}")
                pk = cols[3].checkbox("PK", field.primary_key, key=f"pk-{field.id}")
                unique = cols[4].checkbox("Unique", field.unique, key=f"u-{field.id}")
                default = cols[5].text_input("Default", field.default_value, key=f"d-{field.id}")
                result = designer.update_field(table.id, field.id, name=name, type=ftype, nullable=nullable,
                                               primary_key=pk, unique=unique, default_value=default)
                if not result:
                    st.error(result.message)
                if cols[6].button("✕", key=f"x-{field.id}", disabled=field.primary_key):
                    notify(designer.delete_field(table.id, field.id))
                    st.rerun()

            a, b, c = st.columns(3)
            if a.button("Add Field", key=f"af-{table.id}"):
                designer.add_field(table.id)
                st.rerun()
            b.checkbox("Row Level Security", table.enable_row_security, key=f"rls-{table.id}",
                       on_change=designer.toggle_row_security, args=(table.id,))
            if c.button("Delete Table", key=f"dt-{table.id}"):
                notify(designer.delete_table(table.id))
                st.rerun()

    st.markdown('<div class="section-label">SQL</div>', unsafe_allow_html=True)
    st.code(designer.generate_sql() or "-- No tables yet", language="sql")
    exported = designer.export_file()
    if exported:
        st.download_button("Save SQL", exported.value.content, file_name=exported.value.filename, mime="text/sql")

    sql_text = st.text_area("Import SQL", placeholder="CREATE TABLE ...", height=140)
    if st.button("Import SQL"):
        notify(designer.import_sql(sql_text))

# ═══════════════════════════════════════════════════════════════
# SPREADSHEET
# ═══════════════════════════════════════════════════════════════

with sheet_tab:
    sheet_csv = st.text_area("Load CSV", placeholder="a,b,c\n1,2,3", height=100)
    if st.button("Load into Sheet"):
        st.session_state.grid = grid = SpreadsheetGrid.from_csv(sheet_csv)

    edited = st.data_editor(
        pd.DataFrame(grid.values(), columns=grid.labels()),
        num_rows="dynamic",
        use_container_width=True,
        key="sheet-editor"
    )
    for r, row in enumerate(edited.itertuples(index=False)):
        for c, value in enumerate(row):
            text = "" if pd.isna(value) else str(value)
            if text != grid.get(r, c):
                grid.set(r, c, text)

    a, b = st.columns(2)
    for column, fmt, label in [(a, "csv", "Save as CSV"), (b, "xls", "Save as Excel")]:
        exported = grid.export_file(fmt)
        if exported:
            column.download_button(label, exported.value.content, file_name=exported.value.filename,
                                   mime=exported.value.mime_type, use_container_width=True)

# ═══════════════════════════════════════════════════════════════
# DOCUMENTS
# ═══════════════════════════════════════════════════════════════

with docs_tab:
    with st.form("upload_document", clear_on_submit=True):
        upload = st.file_uploader("Document")
        category = st.text_input("Category")
        doc_description = st.text_input("Description")
        if st.form_submit_button("Upload") and upload is not None:
            notify(documents.upload(upload.name, upload.getvalue(), upload.type or "", category, doc_description))

    for document in documents.documents:
        with st.expander(f"{document['file_name']} · {document['file_size']} bytes"):
            parsed = document.get("parsed_data") or {}
            if parsed.get("type") == "csv" and isinstance(parsed.get("content"), list):
                st.dataframe(pd.DataFrame(parsed["content"]), use_container_width=True)
            elif parsed:
                st.json(parsed)
            # File bytes are read only after an explicit request
            if document["id"] in documents.prepared:
                st.download_button("Download", documents.prepared[document["id"]], file_name=document["file_name"],
                                   key=f"dl-{document['id']}")
            elif st.button("Prepare download", key=f"prep-{document['id']}"):
                downloaded = documents.prepare_download(document)
                if downloaded:
                    st.rerun()
                notify(downloaded)
            if st.button("Delete", key=f"deldoc-{document['id']}"):
                notify(documents.delete(document["id"], document["file_path"]))
                st.rerun()

    if documents.documents:
        st.markdown('<div class="section-label">Document Editor</div>', unsafe_allow_html=True)
        by_id = {d["id"]: d for d in documents.documents}
        editing_id = st.selectbox("Document", list(by_id), format_func=lambda doc_id: by_id[doc_id]["file_name"])
        editing = by_id[editing_id]
        edited_text = st.text_area(
            "Content",
            document_text(editing),
            height=240,
            placeholder="Document content will appear here...",
            key=f"edit-{editing_id}"
        )
        a, b, c = st.columns(3)
        for column, fmt, label in [(a, "txt", "Save as Text"), (b, "doc", "Save as Word"), (c, "html", "Save as HTML")]:
            exported = export_edited(editing, edited_text, fmt)
            if exported:
                column.download_button(label, exported.value.content, file_name=exported.value.filename,
                                       mime=exported.value.mime_type, use_container_width=True)

# ═══════════════════════════════════════════════════════════════
# ANALYTICS
# ═══════════════════════════════════════════════════════════════

with analytics_tab:
    analytics = compute_analytics(service.stocks)
    if analytics is None:
        st.info("No Data Available. Add some stock items to see analytics and insights.")
    else:
        c1, c2, c3, c4 = st.columns(4)
        c1.metric("Total Items", analytics["total_items"], f"+{analytics['recent_additions']} this week")
        c2.metric("Total Quantity", analytics["total_quantity"])
        c3.metric("Low Stock", analytics["low_stock_count"])
        c4.metric("Out of Stock", analytics["out_of_stock_count"])

        left, right = st.columns(2)
        with left:
            st.markdown('<div class="section-label">Top Stock Numbers</div>', unsafe_allow_html=True)
            st.bar_chart(pd.DataFrame(analytics["top_stocks"], columns=["stock", "quantity"]).set_index("stock"))
        with right:
            st.markdown('<div class="section-label">Status Breakdown</div>', unsafe_allow_html=True)
            st.bar_chart(pd.Series(analytics["status_breakdown"], name="items"))

        st.caption(
            f"{analytics['unique_stock_numbers']} stock numbers · {analytics['unique_batch_numbers']} batches · "
            f"{analytics['avg_quantity_per_item']:.1f} average quantity per item"
        )
