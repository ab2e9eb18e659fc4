"""
Dash dashboard for visualizing batch evaluation results.

Run with: python -m sheetgrader.dashboard --records-dir ./records
"""

import argparse
import sys
from collections.abc import Sequence
from pathlib import Path

from .aggregator import aggregate, score_range_distribution
from .models import BatchItem, EvaluationRecord, ItemStatus
from .persistence import load_records

CARD_STYLE = {
    "flex": "1",
    "textAlign": "center",
    "padding": "20px",
    "backgroundColor": "white",
    "borderRadius": "8px",
    "margin": "10px",
    "boxShadow": "0 2px 4px rgba(0,0,0,0.1)",
}


def items_from_records(records: Sequence[EvaluationRecord]) -> list[BatchItem]:
    """Rebuild completed batch items from saved evaluation records."""
    return [
        BatchItem(
            file_name=record.file_name,
            status=ItemStatus.COMPLETED,
            roll_number=record.roll_number,
            subject_code=record.subject_code,
            score=record.score,
            total_questions=record.total_questions,
            accuracy=record.accuracy,
        )
        for record in records
    ]


def results_frame(items: Sequence[BatchItem]):
    """One row per item with the columns shown in the results table."""
    import pandas as pd

    return pd.DataFrame([
        {
            "File": item.file_name,
            "Roll Number": item.roll_number or "N/A",
            "Subject": item.subject_code or "N/A",
            "Status": item.status.value,
            "Score": item.score,
            "Total": item.total_questions,
            "Accuracy": item.accuracy,
            "Error": item.error or "",
        }
        for item in items
    ])


def _card(value: str, label: str, color: str):
    from dash import html

    return html.Div([
        html.H3(value, style={"color": color, "margin": "0"}),
        html.P(label, style={"color": "#7f8c8d", "margin": "0"}),
    ], style=CARD_STYLE)


def create_dashboard(items: Sequence[BatchItem]):
    """
    Create a Dash dashboard for a batch.

    Args:
        items: Batch items in any state.
    """
    try:
        import plotly.express as px
        from dash import Dash, dash_table, dcc, html
    except ImportError:
        print("Dashboard requires additional dependencies. Install with:")
        print("  pip install dash pandas plotly")
        sys.exit(1)

    df = results_frame(items)
    stats = aggregate(items)
    completed = df[df["Status"] == ItemStatus.COMPLETED.value] if not df.empty else df

    app = Dash(__name__, suppress_callback_exceptions=True)

    if stats is not None:
        cards = [
            _card(f"{stats.avg_accuracy:.1f}%", "Average Accuracy", "#3498db"),
            _card(f"{stats.highest_score.score:g}/{stats.highest_score.total}", "Highest Score", "#27ae60"),
            _card(f"{stats.lowest_score.score:g}/{stats.lowest_score.total}", "Lowest Score", "#e74c3c"),
            _card(f"{stats.pass_rate:.1f}%", "Pass Rate", "#9b59b6"),
        ]
        grades = stats.grade_distribution
        grade_names = ["Excellent", "Good", "Average", "Needs Improvement"]
        grade_counts = [grades.excellent, grades.good, grades.average, grades.needs_improvement]
    else:
        cards = [_card("N/A", "No completed sheets yet", "#7f8c8d")]
        grade_names, grade_counts = [], []

    ranges = score_range_distribution(items)

    app.layout = html.Div([
        # Header
        html.Div([
            html.H1("Sheet Grader Dashboard", style={"color": "#2c3e50", "marginBottom": "5px"}),
            html.P(
                f"Sheets: {len(items)} | Completed: {len(completed)} | "
                f"Failed: {sum(1 for i in items if i.status == ItemStatus.ERROR)}",
                style={"color": "#7f8c8d", "fontSize": "14px"},
            ),
        ], style={"textAlign": "center", "padding": "20px", "backgroundColor": "#ecf0f1"}),

        html.Div(cards, style={"display": "flex", "justifyContent": "center", "padding": "10px 20px"}),

        # Charts row
        html.Div([
            html.Div([
                dcc.Graph(
                    id="scores-bar",
                    figure=(
                        px.bar(
                            completed.sort_values("Accuracy", ascending=False),
                            x="File",
                            y="Accuracy",
                            color="Subject",
                            title="Accuracy by Sheet",
                        )
                        if not completed.empty
                        else px.bar(x=[], y=[], title="Accuracy by Sheet")
                    ).update_layout(xaxis_tickangle=-45, plot_bgcolor="white", yaxis_title="Accuracy (%)"),
                )
            ], style={"flex": "1", "padding": "10px"}),
            html.Div([
                dcc.Graph(
                    id="grade-pie",
                    figure=px.pie(names=grade_names, values=grade_counts, title="Grade Distribution"),
                )
            ], style={"flex": "1", "padding": "10px"}),
            html.Div([
                dcc.Graph(
                    id="range-bar",
                    figure=px.bar(
                        x=[label for label, _, _ in ranges],
                        y=[count for _, count, _ in ranges],
                        labels={"x": "Range", "y": "Sheets"},
                        title="Score Distribution",
                    ).update_layout(plot_bgcolor="white"),
                )
            ], style={"flex": "1", "padding": "10px"}),
        ], style={"display": "flex", "padding": "10px 20px"}),

        # Results table
        html.Div([
            html.H3("Results", style={"color": "#2c3e50", "marginBottom": "10px"}),
            dash_table.DataTable(
                id="results-table",
                columns=[{"name": col, "id": col} for col in df.columns],
                data=df.round(2).to_dict("records"),
                sort_action="native",
                filter_action="native",
                style_table={"overflowX": "auto"},
                style_cell={"textAlign": "left", "padding": "10px", "fontSize": "14px"},
                style_header={"backgroundColor": "#3498db", "color": "white", "fontWeight": "bold"},
                style_data_conditional=[
                    {"if": {"filter_query": "{Status} = error"}, "backgroundColor": "#fadbd8"},
                    {"if": {"filter_query": "{Accuracy} >= 90"}, "backgroundColor": "#d5f5e3"},
                ],
            ),
        ], style={"padding": "20px"}),
    ], style={"fontFamily": "Arial, sans-serif", "backgroundColor": "#f5f6fa", "minHeight": "100vh"})

    return app


def main() -> None:
    parser = argparse.ArgumentParser(description="Sheet Grader results dashboard")
    parser.add_argument("--records-dir", type=Path, default=Path("records"), help="Directory with saved records")
    parser.add_argument("--port", type=int, default=8050, help="Port to serve on")
    args = parser.parse_args()

    records = load_records(args.records_dir)
    if not records:
        print(f"No evaluation records found in {args.records_dir}")
        sys.exit(1)

    app = create_dashboard(items_from_records(records))
    app.run(debug=False, port=args.port)


if __name__ == "__main__":
    main()
