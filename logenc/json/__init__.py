"""JSON encoding of log fields: strings, values, timestamps and durations."""