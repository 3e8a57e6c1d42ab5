"""Miss Belle clinic backend."""
