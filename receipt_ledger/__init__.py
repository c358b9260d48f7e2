"""receipt-ledger: メール添付の領収書を台帳化し、銀行明細と突合する"""

__version__ = "0.1.0"
