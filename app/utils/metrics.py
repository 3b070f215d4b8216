from prometheus_client import Counter, Histogram

posts_created = Counter("board_posts_created_total", "Posts stored", ["kind"])
submissions_rejected = Counter(
    "board_submissions_rejected_total", "Submissions refused before any write", ["reason"]
)
attachments_stored = Counter("board_attachments_stored_total", "Attachments written to disk")
attachments_rejected = Counter(
    "board_attachments_rejected_total", "Attachments dropped or refused", ["reason"]
)
corrupt_records = Counter("board_corrupt_records_total", "Records skipped because they failed to decode")
orphan_replies = Counter("board_orphan_replies_total", "Replies stored without an existing parent")
scan_latency = Histogram("board_scan_latency_seconds", "Full store scan latency seconds")
