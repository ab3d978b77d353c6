"""Course creator: a research/judge loop pipeline streamed to observers over SSE."""
