import calendar
import logging
from datetime import datetime
from typing import Any, Dict, Iterable, List

import polars as pl

logger = logging.getLogger(__name__)

SCHEMA = {
    "type": pl.Utf8,
    "amount": pl.Float64,
    "category": pl.Utf8,
    "description": pl.Utf8,
    "date": pl.Datetime,
}


def _row(tx) -> Dict[str, Any]:
    if isinstance(tx, dict):
        get = tx.get
    else:
        get = lambda key: getattr(tx, key, None)
    amount = get("amount")
    return {
        "type": get("type"),
        "amount": float(amount) if amount is not None else 0.0,
        "category": get("category"),
        "description": get("description"),
        "date": get("date"),
    }


def to_frame(transactions: Iterable) -> pl.DataFrame:
    rows = [_row(tx) for tx in transactions]
    return pl.DataFrame(rows, schema=SCHEMA)


def summarize_transactions(transactions: Iterable) -> Dict[str, Any]:
    """Income, expenses, balance, running balance per day and expense categories"""
    df = to_frame(transactions)

    income = float(df.filter(pl.col("type") == "income")["amount"].sum())
    expenses = float(df.filter(pl.col("type") == "expense")["amount"].sum())

    # Running balance
    daily = (
        df.filter(pl.col("date").is_not_null())
        .with_columns([
            pl.when(pl.col("type") == "income")
            .then(pl.col("amount"))
            .otherwise(-pl.col("amount"))
            .alias("signed"),
            pl.col("date").dt.date().alias("day")
        ])
        .group_by("day")
        .agg(pl.col("signed").sum().alias("net"))
        .sort("day")
        .with_columns(pl.col("net").cum_sum().alias("balance"))
    )
    trends = [
        {"date": row["day"].isoformat(), "balance": round(row["balance"], 2)}
        for row in daily.to_dicts()
    ]

    # Expense categories
    categories = (
        df.filter(pl.col("type") == "expense")
        .with_columns(pl.col("category").fill_null("Uncategorized"))
        .group_by("category")
        .agg([
            pl.col("amount").sum().alias("amount"),
            pl.col("amount").count().alias("count")
        ])
        .sort("amount", descending=True)
        .to_dicts()
    )
    for c in categories:
        c["amount"] = round(c["amount"], 2)

    return {
        "income": round(income, 2),
        "expenses": round(expenses, 2),
        "balance": round(income - expenses, 2),
        "trends": trends,
        "categories": categories
    }


def add_month(value: datetime) -> datetime:
    month = value.month % 12 + 1
    year = value.year + (1 if value.month == 12 else 0)
    day = min(value.day, calendar.monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)


def detect_recurring(transactions: Iterable, tolerance: float = 0.1) -> List[Dict[str, Any]]:
    """Expense descriptions charged in two or more months at a near-constant amount"""
    df = to_frame(transactions).filter(
        (pl.col("type") == "expense")
        & pl.col("date").is_not_null()
        & pl.col("description").is_not_null()
    )
    if df.height == 0:
        return []

    recurring = (
        df.with_columns(pl.col("date").dt.strftime("%Y-%m").alias("month"))
        .group_by("description")
        .agg([
            pl.col("month").n_unique().alias("months"),
            pl.col("amount").count().alias("count"),
            pl.col("amount").mean().alias("average"),
            pl.col("amount").min().alias("min_amount"),
            pl.col("amount").max().alias("max_amount"),
            pl.col("date").max().alias("last_date")
        ])
        .filter(pl.col("months") >= 2)
        .filter((pl.col("max_amount") - pl.col("min_amount")) <= pl.col("average") * tolerance)
        .sort("average", descending=True)
        .to_dicts()
    )

    logger.info(f"Detected {len(recurring)} recurring charges")
    return [
        {
            "name": r["description"],
            "amount": round(r["average"], 2),
            "months": r["months"],
            "count": r["count"],
            "last_date": r["last_date"],
            "next_billing": add_month(r["last_date"])
        }
        for r in recurring
    ]
